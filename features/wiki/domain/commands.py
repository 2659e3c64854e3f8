"""Wikiページ・変更提案の操作に利用するドメインコマンドとファクトリ。"""

from __future__ import annotations

from dataclasses import dataclass

from features.wiki.domain.entities import (
    WikiChangeType,
    WikiPageStatus,
    WorkItemType,
)
from features.wiki.domain.exceptions import WikiValidationError

MAX_TITLE_LENGTH = 255


@dataclass(frozen=True)
class WikiPageCreationCommand:
    """ページ作成に必要な値を正規化したコマンド。"""

    project_id: int
    title: str
    content: str
    parent_id: int | None
    sort_order: int
    author_id: int


@dataclass(frozen=True)
class WikiPageMetadataCommand:
    """タイトル・階層位置の更新コマンド。本文は含まない。"""

    page_id: int
    title: str
    parent_id: int | None
    sort_order: int
    editor_id: int


@dataclass(frozen=True)
class WikiPageStatusCommand:
    page_id: int
    status: WikiPageStatus
    editor_id: int


@dataclass(frozen=True)
class WikiContentEditCommand:
    """本文の直接編集コマンド。``base_hash`` は編集開始時に読んだハッシュ。"""

    page_id: int
    content: str
    base_hash: str | None
    editor_id: int


@dataclass(frozen=True)
class WikiChangeProposalCommand:
    """作業項目に紐づく変更提案の作成コマンド。"""

    page_id: int
    item_type: WorkItemType
    item_id: int
    snapshot: str
    change_type: WikiChangeType
    author_id: int


@dataclass(frozen=True)
class WikiChangeResolutionCommand:
    change_id: int
    content: str
    editor_id: int


@dataclass(frozen=True)
class WikiItemMergeCommand:
    """作業項目完了時の一括マージコマンド。"""

    item_type: WorkItemType
    item_id: int
    actor_id: int


class WikiPageCommandFactory:
    """入力値を正規化しドメインコマンドへ変換するファクトリ。

    本文とスナップショットはハッシュ対象のため前後の空白も含めてそのまま保持する。
    """

    def build_creation_command(
        self,
        *,
        project_id: str | int | None,
        title: str | None,
        content: str | None,
        parent_id: str | int | None,
        sort_order: str | int | None,
        author_id: int,
    ) -> WikiPageCreationCommand:
        return WikiPageCreationCommand(
            project_id=self._parse_required_int(project_id, "プロジェクトの指定が不正です"),
            title=self._normalize_title(title),
            content=self._normalize_optional_content(content),
            parent_id=self._parse_optional_int(parent_id, "親ページの指定が不正です"),
            sort_order=self._parse_sort_order(sort_order),
            author_id=self._parse_actor(author_id),
        )

    def build_metadata_command(
        self,
        *,
        page_id: int,
        title: str | None,
        parent_id: str | int | None,
        sort_order: str | int | None,
        editor_id: int,
    ) -> WikiPageMetadataCommand:
        return WikiPageMetadataCommand(
            page_id=self._parse_required_int(page_id, "ページの指定が不正です"),
            title=self._normalize_title(title),
            parent_id=self._parse_optional_int(parent_id, "親ページの指定が不正です"),
            sort_order=self._parse_sort_order(sort_order),
            editor_id=self._parse_actor(editor_id),
        )

    def build_status_command(self, *, page_id: int, status: str | None, editor_id: int) -> WikiPageStatusCommand:
        return WikiPageStatusCommand(
            page_id=self._parse_required_int(page_id, "ページの指定が不正です"),
            status=WikiPageStatus.parse(status, "ページの状態が不正です"),
            editor_id=self._parse_actor(editor_id),
        )

    def build_content_edit_command(
        self,
        *,
        page_id: int,
        content: str | None,
        base_hash: str | None,
        editor_id: int,
    ) -> WikiContentEditCommand:
        return WikiContentEditCommand(
            page_id=self._parse_required_int(page_id, "ページの指定が不正です"),
            content=self._require_content(content, "内容は必須です"),
            base_hash=self._normalize_optional(base_hash),
            editor_id=self._parse_actor(editor_id),
        )

    def build_proposal_command(
        self,
        *,
        page_id: int,
        item_type: str | None,
        item_id: str | int | None,
        snapshot: str | None,
        change_type: str | None,
        author_id: int,
    ) -> WikiChangeProposalCommand:
        return WikiChangeProposalCommand(
            page_id=self._parse_required_int(page_id, "ページの指定が不正です"),
            item_type=WorkItemType.parse(item_type, "作業項目の種別が不正です"),
            item_id=self._parse_required_int(item_id, "作業項目の指定が不正です"),
            snapshot=self._require_content(snapshot, "変更内容は必須です"),
            change_type=(
                WikiChangeType.parse(change_type, "変更種別が不正です")
                if change_type
                else WikiChangeType.UPDATE
            ),
            author_id=self._parse_actor(author_id),
        )

    def build_resolution_command(
        self,
        *,
        change_id: int,
        content: str | None,
        editor_id: int,
    ) -> WikiChangeResolutionCommand:
        return WikiChangeResolutionCommand(
            change_id=self._parse_required_int(change_id, "変更提案の指定が不正です"),
            content=self._require_content(content, "解決後の内容は必須です"),
            editor_id=self._parse_actor(editor_id),
        )

    def build_item_merge_command(
        self,
        *,
        item_type: str | None,
        item_id: str | int | None,
        actor_id: int,
    ) -> WikiItemMergeCommand:
        return WikiItemMergeCommand(
            item_type=WorkItemType.parse(item_type, "作業項目の種別が不正です"),
            item_id=self._parse_required_int(item_id, "作業項目の指定が不正です"),
            actor_id=self._parse_actor(actor_id),
        )

    @staticmethod
    def _normalize_title(value: str | None) -> str:
        normalized = (value or "").strip()
        if not normalized:
            raise WikiValidationError("タイトルは必須です")
        if len(normalized) > MAX_TITLE_LENGTH:
            raise WikiValidationError("タイトルが長すぎます")
        return normalized

    @staticmethod
    def _normalize_optional(value: str | None) -> str | None:
        normalized = (value or "").strip()
        return normalized or None

    @staticmethod
    def _normalize_optional_content(value: str | None) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise WikiValidationError("内容の形式が不正です")
        return value

    @staticmethod
    def _require_content(value: str | None, error_message: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise WikiValidationError(error_message)
        return value

    @staticmethod
    def _parse_required_int(value: str | int | None, error_message: str) -> int:
        if value in (None, "") or isinstance(value, bool):
            raise WikiValidationError(error_message)
        try:
            parsed = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise WikiValidationError(error_message) from exc
        if parsed <= 0:
            raise WikiValidationError(error_message)
        return parsed

    @classmethod
    def _parse_optional_int(cls, value: str | int | None, error_message: str) -> int | None:
        if value in (None, ""):
            return None
        return cls._parse_required_int(value, error_message)

    @staticmethod
    def _parse_sort_order(value: str | int | None) -> int:
        if value in (None, ""):
            return 0
        try:
            return int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise WikiValidationError("並び順の指定が不正です") from exc

    @classmethod
    def _parse_actor(cls, value: int) -> int:
        return cls._parse_required_int(value, "操作ユーザーが特定できません")


__all__ = [
    "WikiChangeProposalCommand",
    "WikiChangeResolutionCommand",
    "WikiContentEditCommand",
    "WikiItemMergeCommand",
    "WikiPageCommandFactory",
    "WikiPageCreationCommand",
    "WikiPageMetadataCommand",
    "WikiPageStatusCommand",
]
