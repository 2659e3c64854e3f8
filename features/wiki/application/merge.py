"""変更提案のマージと競合解決

マージは ``base_hash`` を期待値とした :meth:`WikiPageService.apply_content`
の compare-and-swap として実行される。比較に負けた提案は Conflict となり、
ページ本文は上書きされない。
"""

from __future__ import annotations

from typing import List, Optional

from core.logging_config import get_wiki_logger, log_wiki_info, log_wiki_warning
from core.models.wiki.models import WikiPageChange
from core.settings import settings
from core.time import utc_now
from features.wiki.application.dto import MergePreview, MergeResult
from features.wiki.application.services import (
    WikiChangeService,
    WikiPageService,
    build_delta,
)
from features.wiki.domain.entities import (
    MergeOutcome,
    WikiChangeStatus,
    WikiChangeType,
    WorkItemType,
)
from features.wiki.domain.exceptions import (
    WikiChangeNotFoundError,
    WikiInvalidStateTransitionError,
    WikiPageNotFoundError,
    WikiStaleContentError,
    WikiValidationError,
)
from features.wiki.infrastructure.transaction import wiki_transaction


logger = get_wiki_logger("merge")


class WikiMergeEngine:
    """変更提案をページへ反映するエンジン"""

    def __init__(
        self,
        page_service: WikiPageService | None = None,
        change_service: WikiChangeService | None = None,
    ) -> None:
        self.page_service = page_service or WikiPageService()
        self.change_service = change_service or WikiChangeService(
            page_repo=self.page_service.page_repo,
            hasher=self.page_service.hasher,
        )

    @property
    def change_repo(self):
        return self.change_service.change_repo

    def merge(self, change_id: int, actor_id: int) -> MergeResult:
        """保留中の提案を1件マージする。競合は例外ではなく結果として返す。"""

        change = self._require_change(change_id)
        if change.change_status is not WikiChangeStatus.PENDING:
            raise WikiInvalidStateTransitionError(
                change.status,
                WikiChangeStatus.MERGED.value,
                message=f"change {change_id} is {change.status} and cannot be merged",
            )
        return self._attempt(change, actor_id)

    def merge_by_item(self, item_type: WorkItemType | str, item_id: int, actor_id: int) -> List[MergeResult]:
        """作業項目に紐づく保留中の提案を古い順にマージする

        提案ごとに独立したトランザクションで処理するため、1件の競合が
        他の提案のマージを妨げることはない。
        """

        item_type = WorkItemType.parse(item_type, "作業項目の種別が不正です")
        pending = self.change_repo.find_pending_by_item(item_type, item_id)

        results: List[MergeResult] = []
        for candidate in pending:
            change = self.change_repo.find_by_id(candidate.id, refresh=True)
            if change is None or change.change_status is not WikiChangeStatus.PENDING:
                continue
            try:
                results.append(self._attempt(change, actor_id))
            except WikiPageNotFoundError:
                log_wiki_warning(
                    logger,
                    f"Skipped wiki change {candidate.id}: page no longer exists",
                    "wiki.merge_by_item.skipped",
                    change_id=candidate.id,
                    page_id=candidate.wiki_page_id,
                    item_type=item_type.value,
                    item_id=item_id,
                )
            except WikiInvalidStateTransitionError as exc:
                log_wiki_warning(
                    logger,
                    f"Skipped wiki change {candidate.id}: status changed to {exc.current}",
                    "wiki.merge_by_item.skipped",
                    change_id=candidate.id,
                    page_id=candidate.wiki_page_id,
                    status=exc.current,
                    item_type=item_type.value,
                    item_id=item_id,
                )

        log_wiki_info(
            logger,
            f"Merged wiki changes for {item_type.value} {item_id}",
            "wiki.merge_by_item.completed",
            item_type=item_type.value,
            item_id=item_id,
            merged=sum(1 for result in results if result.merged),
            conflicted=sum(1 for result in results if result.conflicted),
            actor_id=actor_id,
        )
        return results

    def preview_merge(self, change_id: int) -> MergePreview:
        """マージした場合の結果を副作用なしで返す"""

        change = self._require_change(change_id)
        if change.change_status.is_terminal:
            raise WikiInvalidStateTransitionError(
                change.status, message=f"change {change_id} is {change.status} and cannot be previewed"
            )
        page = self.page_service.page_repo.find_by_id(change.wiki_page_id, refresh=True)
        if page is None:
            raise WikiPageNotFoundError(f"wiki page {change.wiki_page_id} not found")

        return MergePreview(
            change=change,
            content=change.snapshot,
            current_content=page.content,
            current_hash=page.content_hash,
            would_conflict=change.base_hash != page.content_hash,
        )

    def _attempt(self, change: WikiPageChange, actor_id: int) -> MergeResult:
        with self.page_service.write_section(change.wiki_page_id):
            with wiki_transaction():
                result = self.apply_change(change, actor_id)
        self._log_result(result, actor_id)
        return result

    def apply_change(self, change: WikiPageChange, actor_id: int) -> MergeResult:
        """現在のトランザクション内で提案を反映するか Conflict にする"""

        try:
            page = self.page_service.apply_content(
                change.wiki_page_id,
                change.snapshot,
                actor_id,
                expected_hash=change.base_hash,
            )
        except WikiStaleContentError as exc:
            if change.change_status is WikiChangeStatus.CONFLICT:
                self.change_service.touch(change)
            else:
                self.change_service.transition(change, WikiChangeStatus.CONFLICT)
            return MergeResult(
                change=change,
                outcome=MergeOutcome.CONFLICT,
                current_hash=exc.current_hash,
            )

        self.change_service.transition(change, WikiChangeStatus.MERGED)
        return MergeResult(
            change=change,
            outcome=MergeOutcome.MERGED,
            page=page,
            current_hash=page.content_hash,
        )

    def _log_result(self, result: MergeResult, actor_id: int) -> None:
        change = result.change
        if result.merged:
            log_wiki_info(
                logger,
                f"Wiki change {change.id} merged into page {change.wiki_page_id}",
                "wiki.change.merged",
                change_id=change.id,
                page_id=change.wiki_page_id,
                version=result.page.version if result.page else None,
                actor_id=actor_id,
            )
        else:
            log_wiki_warning(
                logger,
                f"Wiki change {change.id} conflicts with page {change.wiki_page_id}",
                "wiki.change.conflict",
                change_id=change.id,
                page_id=change.wiki_page_id,
                base_hash=change.base_hash,
                current_hash=result.current_hash,
                actor_id=actor_id,
            )

    def _require_change(self, change_id: int) -> WikiPageChange:
        change = self.change_repo.find_by_id(change_id, refresh=True)
        if change is None:
            raise WikiChangeNotFoundError(f"wiki change {change_id} not found")
        return change


class WikiConflictResolver:
    """Conflict 状態の提案を解決または却下する"""

    def __init__(self, merge_engine: WikiMergeEngine | None = None) -> None:
        self.merge_engine = merge_engine or WikiMergeEngine()

    def resolve(self, change_id: int, resolved_content: str, actor_id: int) -> MergeResult:
        """手動で統合した内容で提案を置き換え、現在のハッシュを基準に再マージする"""

        engine = self.merge_engine
        if not isinstance(resolved_content, str) or not resolved_content.strip():
            raise WikiValidationError("解決後の内容は必須です")
        resolved_hash = engine.page_service.hasher.hash(resolved_content)

        change = engine._require_change(change_id)
        if change.change_status is not WikiChangeStatus.CONFLICT:
            raise WikiInvalidStateTransitionError(
                change.status,
                WikiChangeStatus.MERGED.value,
                message=f"change {change_id} is {change.status}, only conflicts can be resolved",
            )

        with engine.page_service.write_section(change.wiki_page_id):
            with wiki_transaction():
                page = engine.page_service.page_repo.find_by_id(change.wiki_page_id, refresh=True)
                if page is None:
                    raise WikiPageNotFoundError(f"wiki page {change.wiki_page_id} not found")

                change.snapshot = resolved_content
                change.snapshot_hash = resolved_hash
                change.base_hash = page.content_hash
                change.change_type = WikiChangeType.MERGE.value
                if settings.wiki_record_delta:
                    change.delta = build_delta(page.content, resolved_content)
                change.updated_at = utc_now()

                result = engine.apply_change(change, actor_id)

        if result.merged:
            log_wiki_info(
                logger,
                f"Wiki conflict resolved for change {change.id}",
                "wiki.change.resolved",
                change_id=change.id,
                page_id=change.wiki_page_id,
                version=result.page.version if result.page else None,
                actor_id=actor_id,
            )
        else:
            engine._log_result(result, actor_id)
        return result

    def reject(self, change_id: int, actor_id: int, reason: Optional[str] = None) -> WikiPageChange:
        """保留中または競合中の提案を却下する。ページは変更しない。"""

        engine = self.merge_engine
        with wiki_transaction():
            change = engine._require_change(change_id)
            engine.change_service.transition(change, WikiChangeStatus.REJECTED)

        log_wiki_info(
            logger,
            f"Wiki change {change_id} rejected",
            "wiki.change.rejected",
            change_id=change_id,
            page_id=change.wiki_page_id,
            reason=reason,
            actor_id=actor_id,
        )
        return change


__all__ = ["WikiConflictResolver", "WikiMergeEngine"]
