"""Infrastructure layer for Wiki feature."""

from .page_locks import PageLockRegistry, page_locks
from .repositories import WikiPageChangeRepository, WikiPageRepository
from .transaction import wiki_transaction
from .work_items import (
    InMemoryWorkItemResolver,
    PermissiveWorkItemResolver,
    get_work_item_resolver,
)

__all__ = [
    "InMemoryWorkItemResolver",
    "PageLockRegistry",
    "PermissiveWorkItemResolver",
    "WikiPageChangeRepository",
    "WikiPageRepository",
    "get_work_item_resolver",
    "page_locks",
    "wiki_transaction",
]
