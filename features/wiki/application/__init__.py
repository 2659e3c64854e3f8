"""Wikiアプリケーション層の公開インターフェース"""

from .merge import WikiConflictResolver, WikiMergeEngine
from .services import WikiChangeService, WikiPageService
from .use_cases import *  # noqa: F401,F403 - re-export use cases for convenience

__all__ = [
    "WikiChangeService",
    "WikiConflictResolver",
    "WikiMergeEngine",
    "WikiPageService",
] + [name for name in globals().keys() if name.endswith("UseCase")]
