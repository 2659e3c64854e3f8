"""
Wiki domain entities - ページ・変更提案の状態と作業項目の参照
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Protocol, runtime_checkable

from features.wiki.domain.exceptions import (
    WikiInvalidStateTransitionError,
    WikiValidationError,
)


class _ValueEnum(str, Enum):
    """永続化される文字列値を持つ列挙型の基底"""

    @classmethod
    def parse(cls, value: object, error_message: str | None = None):
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip()
        for member in cls:
            if member.value == normalized:
                return member
        raise WikiValidationError(error_message or f"invalid {cls.__name__}: {value!r}")

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)

    def __str__(self) -> str:
        return self.value


class WikiPageStatus(_ValueEnum):
    """ページの編集上の公開状態（マージ状態とは独立）"""

    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


class WikiChangeStatus(_ValueEnum):
    """変更提案の状態"""

    PENDING = "Pending"
    MERGED = "Merged"
    REJECTED = "Rejected"
    CONFLICT = "Conflict"

    @property
    def is_terminal(self) -> bool:
        return self in (WikiChangeStatus.MERGED, WikiChangeStatus.REJECTED)


class WikiChangeType(_ValueEnum):
    """変更提案の分類タグ（情報用途のみ）"""

    CREATE = "create"
    UPDATE = "update"
    MERGE = "merge"


class WorkItemType(_ValueEnum):
    """変更提案の起点となる外部作業項目の種別"""

    FEATURE = "feature"
    ISSUE = "issue"


class MergeOutcome(_ValueEnum):
    """マージ試行の結果"""

    MERGED = "merged"
    CONFLICT = "conflict"


# Conflict -> Conflict is not a transition: a failed re-merge leaves the status as is.
CHANGE_STATUS_TRANSITIONS: Mapping[WikiChangeStatus, frozenset[WikiChangeStatus]] = {
    WikiChangeStatus.PENDING: frozenset(
        {WikiChangeStatus.MERGED, WikiChangeStatus.CONFLICT, WikiChangeStatus.REJECTED}
    ),
    WikiChangeStatus.CONFLICT: frozenset({WikiChangeStatus.MERGED, WikiChangeStatus.REJECTED}),
    WikiChangeStatus.MERGED: frozenset(),
    WikiChangeStatus.REJECTED: frozenset(),
}


def can_transition(current: WikiChangeStatus | str, target: WikiChangeStatus | str) -> bool:
    current_status = WikiChangeStatus.parse(current)
    target_status = WikiChangeStatus.parse(target)
    return target_status in CHANGE_STATUS_TRANSITIONS[current_status]


def ensure_transition(current: WikiChangeStatus | str, target: WikiChangeStatus | str) -> WikiChangeStatus:
    """遷移が許可されていることを確認し、遷移先の状態を返す。"""

    current_status = WikiChangeStatus.parse(current)
    target_status = WikiChangeStatus.parse(target)
    if target_status not in CHANGE_STATUS_TRANSITIONS[current_status]:
        raise WikiInvalidStateTransitionError(current_status.value, target_status.value)
    return target_status


@dataclass(frozen=True)
class WorkItemRef:
    """外部の作業項目（機能・課題）への参照"""

    item_type: WorkItemType
    item_id: int
    project_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "item_type", WorkItemType.parse(self.item_type))
        if not isinstance(self.item_id, int) or isinstance(self.item_id, bool) or self.item_id <= 0:
            raise WikiValidationError("item id must be a positive integer")

    def belongs_to(self, project_id: int) -> bool:
        # プロジェクトを持たない参照はどのプロジェクトにも属しうる
        return self.project_id is None or self.project_id == project_id


@runtime_checkable
class WorkItemResolver(Protocol):
    """作業項目の存在と所属プロジェクトを解決する外部コンポーネント"""

    def resolve_item(self, item_type: WorkItemType, item_id: int) -> Optional[WorkItemRef]:  # pragma: no cover - プロトコル定義
        ...


__all__ = [
    "CHANGE_STATUS_TRANSITIONS",
    "MergeOutcome",
    "WikiChangeStatus",
    "WikiChangeType",
    "WikiPageStatus",
    "WorkItemRef",
    "WorkItemResolver",
    "WorkItemType",
    "can_transition",
    "ensure_transition",
]
