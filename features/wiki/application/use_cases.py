"""Wikiアプリケーション層のユースケース"""

from __future__ import annotations

from typing import Optional

from core.models.wiki.models import WikiPage, WikiPageChange
from features.wiki.application.dto import (
    MergeResult,
    WikiChangeProposalInput,
    WikiChangeResolutionInput,
    WikiContentEditInput,
    WikiItemCompletionInput,
    WikiItemMergeSummary,
    WikiPageCreateInput,
    WikiPageMetadataInput,
    WikiPageStatusInput,
)
from features.wiki.application.merge import WikiConflictResolver, WikiMergeEngine
from features.wiki.application.services import WikiChangeService, WikiPageService
from features.wiki.domain.commands import WikiPageCommandFactory


class WikiPageCreationUseCase:
    """Wikiページ作成ユースケース"""

    def __init__(
        self,
        page_service: Optional[WikiPageService] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.page_service = page_service or WikiPageService()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiPageCreateInput) -> WikiPage:
        command = self.command_factory.build_creation_command(
            project_id=data.project_id,
            title=data.title,
            content=data.content,
            parent_id=data.parent_id,
            sort_order=data.sort_order,
            author_id=data.author_id,
        )
        return self.page_service.create_page(
            project_id=command.project_id,
            title=command.title,
            content=command.content,
            actor_id=command.author_id,
            parent_id=command.parent_id,
            sort_order=command.sort_order,
        )


class WikiPageMetadataUpdateUseCase:
    """タイトル・階層位置の更新ユースケース"""

    def __init__(
        self,
        page_service: Optional[WikiPageService] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.page_service = page_service or WikiPageService()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiPageMetadataInput) -> WikiPage:
        command = self.command_factory.build_metadata_command(
            page_id=data.page_id,
            title=data.title,
            parent_id=data.parent_id,
            sort_order=data.sort_order,
            editor_id=data.editor_id,
        )
        return self.page_service.update_metadata(
            command.page_id,
            title=command.title,
            parent_id=command.parent_id,
            sort_order=command.sort_order,
            actor_id=command.editor_id,
        )


class WikiPageStatusUpdateUseCase:
    def __init__(
        self,
        page_service: Optional[WikiPageService] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.page_service = page_service or WikiPageService()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiPageStatusInput) -> WikiPage:
        command = self.command_factory.build_status_command(
            page_id=data.page_id,
            status=data.status,
            editor_id=data.editor_id,
        )
        return self.page_service.update_status(command.page_id, command.status, command.editor_id)


class WikiPageContentEditUseCase:
    """ページ本文の直接編集ユースケース

    ``base_hash`` を指定した場合、編集開始後に他の書き込みがあれば
    :class:`WikiStaleContentError` となる。
    """

    def __init__(
        self,
        page_service: Optional[WikiPageService] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.page_service = page_service or WikiPageService()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiContentEditInput) -> WikiPage:
        command = self.command_factory.build_content_edit_command(
            page_id=data.page_id,
            content=data.content,
            base_hash=data.base_hash,
            editor_id=data.editor_id,
        )
        return self.page_service.edit_content(
            command.page_id,
            command.content,
            command.editor_id,
            base_hash=command.base_hash,
        )


class WikiChangeProposalUseCase:
    """作業項目からの変更提案作成ユースケース"""

    def __init__(
        self,
        change_service: Optional[WikiChangeService] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.change_service = change_service or WikiChangeService()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiChangeProposalInput) -> WikiPageChange:
        command = self.command_factory.build_proposal_command(
            page_id=data.page_id,
            item_type=data.item_type,
            item_id=data.item_id,
            snapshot=data.content,
            change_type=data.change_type,
            author_id=data.author_id,
        )
        return self.change_service.create(
            command.page_id,
            command.item_type,
            command.item_id,
            command.snapshot,
            command.author_id,
            change_type=command.change_type,
        )


class WikiItemCompletionUseCase:
    """作業項目の完了に伴い保留中の提案をまとめてマージする"""

    def __init__(
        self,
        merge_engine: Optional[WikiMergeEngine] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.merge_engine = merge_engine or WikiMergeEngine()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiItemCompletionInput) -> WikiItemMergeSummary:
        command = self.command_factory.build_item_merge_command(
            item_type=data.item_type,
            item_id=data.item_id,
            actor_id=data.actor_id,
        )
        results = self.merge_engine.merge_by_item(command.item_type, command.item_id, command.actor_id)
        return WikiItemMergeSummary(results=results)


class WikiChangeResolutionUseCase:
    """競合した提案の手動解決ユースケース"""

    def __init__(
        self,
        resolver: Optional[WikiConflictResolver] = None,
        command_factory: Optional[WikiPageCommandFactory] = None,
    ) -> None:
        self.resolver = resolver or WikiConflictResolver()
        self.command_factory = command_factory or WikiPageCommandFactory()

    def execute(self, data: WikiChangeResolutionInput) -> MergeResult:
        command = self.command_factory.build_resolution_command(
            change_id=data.change_id,
            content=data.content,
            editor_id=data.editor_id,
        )
        return self.resolver.resolve(command.change_id, command.content, command.editor_id)


__all__ = [
    "WikiChangeProposalUseCase",
    "WikiChangeResolutionUseCase",
    "WikiItemCompletionUseCase",
    "WikiPageContentEditUseCase",
    "WikiPageCreationUseCase",
    "WikiPageMetadataUpdateUseCase",
    "WikiPageStatusUpdateUseCase",
]
