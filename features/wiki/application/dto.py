"""Wikiアプリケーション層で利用するDTOとビューモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from core.models.wiki.models import WikiPage, WikiPageChange
from features.wiki.domain.entities import MergeOutcome

T = TypeVar("T")


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total


@dataclass(frozen=True)
class MergeResult:
    """1件の変更提案に対するマージ試行の結果

    ``page`` はマージが成功した場合のみ設定される。
    """

    change: WikiPageChange
    outcome: MergeOutcome
    page: Optional[WikiPage] = None
    current_hash: Optional[str] = None

    @property
    def merged(self) -> bool:
        return self.outcome is MergeOutcome.MERGED

    @property
    def conflicted(self) -> bool:
        return self.outcome is MergeOutcome.CONFLICT


@dataclass(frozen=True)
class MergePreview:
    """マージを実行した場合の結果の見込み（副作用なし）"""

    change: WikiPageChange
    content: str
    current_content: str
    current_hash: str
    would_conflict: bool


@dataclass(frozen=True)
class WikiPageTreeNode:
    page: WikiPage
    children: List["WikiPageTreeNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.page.to_dict()
        data.pop("content", None)
        data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(frozen=True)
class WikiPageCreateInput:
    project_id: int
    title: str
    content: Optional[str]
    parent_id: Optional[int]
    sort_order: Optional[int]
    author_id: int


@dataclass(frozen=True)
class WikiPageMetadataInput:
    page_id: int
    title: str
    parent_id: Optional[int]
    sort_order: Optional[int]
    editor_id: int


@dataclass(frozen=True)
class WikiPageStatusInput:
    page_id: int
    status: str
    editor_id: int


@dataclass(frozen=True)
class WikiContentEditInput:
    page_id: int
    content: str
    base_hash: Optional[str]
    editor_id: int


@dataclass(frozen=True)
class WikiChangeProposalInput:
    page_id: int
    item_type: str
    item_id: int
    content: str
    author_id: int
    change_type: Optional[str] = None


@dataclass(frozen=True)
class WikiChangeResolutionInput:
    change_id: int
    content: str
    editor_id: int


@dataclass(frozen=True)
class WikiItemCompletionInput:
    item_type: str
    item_id: int
    actor_id: int


@dataclass(frozen=True)
class WikiItemMergeSummary:
    results: List[MergeResult]

    @property
    def merged(self) -> List[MergeResult]:
        return [result for result in self.results if result.merged]

    @property
    def conflicted(self) -> List[MergeResult]:
        return [result for result in self.results if result.conflicted]
