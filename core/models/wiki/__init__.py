"""Wiki feature ORM models."""

from .models import WikiPage, WikiPageChange

__all__ = ["WikiPage", "WikiPageChange"]
