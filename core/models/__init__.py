"""ORM models shared across applications."""

# モデルの循環インポートを避けるため、ここで一括インポート
from .log import Log
from .wiki.models import WikiPage, WikiPageChange

__all__ = [
    'Log',
    'WikiPage',
    'WikiPageChange',
]
