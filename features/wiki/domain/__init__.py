"""Wiki ドメインモジュール。"""

from .entities import (
    CHANGE_STATUS_TRANSITIONS,
    MergeOutcome,
    WikiChangeStatus,
    WikiChangeType,
    WikiPageStatus,
    WorkItemRef,
    WorkItemResolver,
    WorkItemType,
    can_transition,
    ensure_transition,
)
from .hashing import ContentHasher, compute_content_hash
from .slug import Slug, SlugNormalizer, SlugService

__all__ = [
    "CHANGE_STATUS_TRANSITIONS",
    "ContentHasher",
    "MergeOutcome",
    "Slug",
    "SlugNormalizer",
    "SlugService",
    "WikiChangeStatus",
    "WikiChangeType",
    "WikiPageStatus",
    "WorkItemRef",
    "WorkItemResolver",
    "WorkItemType",
    "can_transition",
    "compute_content_hash",
    "ensure_transition",
]
