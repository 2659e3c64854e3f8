"""Wiki機能のアプリケーションサービス - ページと変更提案の管理"""

from __future__ import annotations

import difflib
from contextlib import nullcontext
from datetime import datetime
from typing import ContextManager, Dict, List, Optional

from sqlalchemy.orm.attributes import set_committed_value

from core.logging_config import get_wiki_logger, log_wiki_info, log_wiki_warning
from core.models.wiki.models import WikiPage, WikiPageChange
from core.settings import CAS_STRATEGY_PAGE_LOCK, settings
from core.time import utc_now
from features.wiki.application.dto import PaginatedResult, WikiPageTreeNode
from features.wiki.application.pagination import PaginationParams
from features.wiki.domain.entities import (
    WikiChangeStatus,
    WikiChangeType,
    WikiPageStatus,
    WorkItemResolver,
    WorkItemType,
    ensure_transition,
)
from features.wiki.domain.exceptions import (
    WikiAccessDeniedError,
    WikiChangeNotFoundError,
    WikiInvalidStateTransitionError,
    WikiOperationError,
    WikiPageNotFoundError,
    WikiStaleContentError,
    WikiValidationError,
)
from features.wiki.domain.hashing import ContentHasher
from features.wiki.domain.slug import SlugService
from features.wiki.infrastructure.page_locks import PageLockRegistry, page_locks
from features.wiki.infrastructure.repositories import (
    WikiPageChangeRepository,
    WikiPageRepository,
)
from features.wiki.infrastructure.transaction import wiki_transaction
from features.wiki.infrastructure.work_items import get_work_item_resolver


logger = get_wiki_logger("services")


def build_delta(base_content: str, snapshot: str) -> str:
    """ページ本文からスナップショットへの unified diff（参考情報）"""

    return "".join(
        difflib.unified_diff(
            base_content.splitlines(keepends=True),
            snapshot.splitlines(keepends=True),
            fromfile="current",
            tofile="proposed",
        )
    )


class WikiPageService:
    """Wikiページ関連のビジネスロジック

    本文の書き換えは :meth:`apply_content` に集約されている。
    """

    def __init__(
        self,
        page_repo: WikiPageRepository | None = None,
        hasher: ContentHasher | None = None,
        slug_service: SlugService | None = None,
        lock_registry: PageLockRegistry | None = None,
    ) -> None:
        self.page_repo = page_repo or WikiPageRepository()
        self.hasher = hasher or ContentHasher()
        self.slug_service = slug_service or SlugService()
        self.lock_registry = lock_registry if lock_registry is not None else page_locks

    def write_section(self, page_id: int) -> ContextManager[None]:
        """設定された方式に応じたページ単位の書き込み区間"""

        if settings.wiki_cas_strategy == CAS_STRATEGY_PAGE_LOCK:
            return self.lock_registry.hold(page_id)
        return nullcontext()

    def create_page(
        self,
        project_id: int,
        title: str,
        content: str,
        actor_id: int,
        parent_id: Optional[int] = None,
        sort_order: int = 0,
    ) -> WikiPage:
        """新しいWikiページを作成"""

        if not title or not title.strip():
            raise WikiValidationError("タイトルは必須です")
        content_hash = self.hasher.hash(content)

        with wiki_transaction():
            if parent_id is not None:
                self._require_parent(project_id, parent_id)

            slug = self.slug_service.generate_unique_from_title(
                title,
                lambda candidate: self.page_repo.slug_exists(project_id, candidate),
            )
            now = utc_now()
            page = WikiPage(
                project_id=project_id,
                slug=slug.value,
                title=title.strip(),
                content=content,
                content_hash=content_hash,
                version=1,
                status=WikiPageStatus.DRAFT.value,
                parent_id=parent_id,
                sort_order=sort_order,
                created_by_id=actor_id,
                updated_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self.page_repo.add(page)

        log_wiki_info(
            logger,
            f"Wiki page created: {page.slug}",
            "wiki.page.created",
            page_id=page.id,
            project_id=project_id,
            actor_id=actor_id,
        )
        return page

    def get_page(self, page_id: int) -> WikiPage:
        page = self.page_repo.find_by_id(page_id, refresh=True)
        if page is None:
            raise WikiPageNotFoundError(f"wiki page {page_id} not found")
        return page

    def get_page_by_slug(self, project_id: int, slug: str) -> WikiPage:
        page = self.page_repo.find_by_slug(project_id, slug)
        if page is None:
            raise WikiPageNotFoundError(f"wiki page '{slug}' not found")
        return page

    def list_pages(
        self,
        project_id: int,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        status: Optional[str] = None,
    ) -> PaginatedResult[WikiPage]:
        """プロジェクトのページ一覧（更新日時の新しい順）"""

        if status:
            status = WikiPageStatus.parse(status, "ページの状態が不正です").value
        params = PaginationParams(page, page_size)
        items, total = self.page_repo.find_by_project(
            project_id, offset=params.offset, limit=params.limit, status=status
        )
        return PaginatedResult(items=items, total=total, page=params.page, page_size=params.page_size)

    def get_page_tree(self, project_id: int) -> List[WikiPageTreeNode]:
        """ページの階層構造を取得"""

        pages = self.page_repo.find_all_by_project(project_id)
        children: Dict[Optional[int], List[WikiPage]] = {}
        known_ids = {page.id for page in pages}
        for page in pages:
            parent_key = page.parent_id if page.parent_id in known_ids else None
            children.setdefault(parent_key, []).append(page)

        def build(parent_key: Optional[int]) -> List[WikiPageTreeNode]:
            return [
                WikiPageTreeNode(page=child, children=build(child.id))
                for child in children.get(parent_key, [])
            ]

        return build(None)

    def update_metadata(
        self,
        page_id: int,
        title: str,
        parent_id: Optional[int],
        sort_order: int,
        actor_id: int,
    ) -> WikiPage:
        """タイトル・親ページ・並び順を更新する。本文とバージョンは変更しない。"""

        if not title or not title.strip():
            raise WikiValidationError("タイトルは必須です")
        title = title.strip()

        with wiki_transaction():
            page = self.get_page(page_id)
            if parent_id is not None:
                if parent_id == page.id:
                    raise WikiOperationError("ページを自身の子にすることはできません")
                parent = self._require_parent(page.project_id, parent_id)
                if self._is_descendant(parent, page.id):
                    raise WikiOperationError("ページの階層が循環しています")

            if title != page.title:
                slug = self.slug_service.generate_unique_from_title(
                    title,
                    lambda candidate: self.page_repo.slug_exists(
                        page.project_id, candidate, exclude_page_id=page.id
                    ),
                )
                page.slug = slug.value
                page.title = title

            page.parent_id = parent_id
            page.sort_order = sort_order
            page.updated_by_id = actor_id
            page.updated_at = utc_now()

        return page

    def update_status(self, page_id: int, status: WikiPageStatus | str, actor_id: int) -> WikiPage:
        """編集上の状態を更新"""

        status = WikiPageStatus.parse(status, "ページの状態が不正です")
        with wiki_transaction():
            page = self.get_page(page_id)
            page.status = status.value
            page.updated_by_id = actor_id
            page.updated_at = utc_now()
        return page

    def delete_page(self, page_id: int, actor_id: int) -> None:
        """ページを削除する。子ページがある場合は削除できない。"""

        with wiki_transaction():
            page = self.get_page(page_id)
            if self.page_repo.find_children(page.id):
                raise WikiOperationError("子ページが存在するため削除できません")
            self.page_repo.delete(page)

        log_wiki_info(
            logger,
            f"Wiki page deleted: {page_id}",
            "wiki.page.deleted",
            page_id=page_id,
            actor_id=actor_id,
        )

    def apply_content(
        self,
        page_id: int,
        new_content: str,
        actor_id: int,
        expected_hash: Optional[str] = None,
    ) -> WikiPage:
        """本文を書き換える唯一の経路

        ハッシュの比較と書き込みは1つの条件付き UPDATE で行う。
        ``expected_hash`` と現在のハッシュが一致しなければ
        :class:`WikiStaleContentError` を送出する。コミットは呼び出し側が行う。
        """

        new_hash = self.hasher.hash(new_content)
        current_hash = self.page_repo.current_hash(page_id)
        if current_hash is None:
            raise WikiPageNotFoundError(f"wiki page {page_id} not found")

        if expected_hash is None:
            expected_hash = current_hash

        swapped = self.page_repo.compare_and_swap_content(
            page_id,
            expected_hash=expected_hash,
            content=new_content,
            content_hash=new_hash,
            actor_id=actor_id,
            now=utc_now(),
        )
        if not swapped:
            current_hash = self.page_repo.current_hash(page_id)
            if current_hash is None:
                raise WikiPageNotFoundError(f"wiki page {page_id} not found")
            raise WikiStaleContentError(page_id, expected_hash, current_hash)

        return self.page_repo.find_by_id(page_id, refresh=True)

    def edit_content(
        self,
        page_id: int,
        content: str,
        actor_id: int,
        base_hash: Optional[str] = None,
    ) -> WikiPage:
        """ページ編集画面からの直接編集"""

        try:
            with self.write_section(page_id):
                with wiki_transaction():
                    page = self.apply_content(page_id, content, actor_id, expected_hash=base_hash)
        except WikiStaleContentError as exc:
            log_wiki_warning(
                logger,
                f"Stale write rejected for wiki page {page_id}",
                "wiki.page.stale_write",
                page_id=page_id,
                actor_id=actor_id,
                expected_hash=exc.expected_hash,
                current_hash=exc.current_hash,
            )
            raise

        log_wiki_info(
            logger,
            f"Wiki page content updated: {page.slug} v{page.version}",
            "wiki.page.content_applied",
            page_id=page.id,
            version=page.version,
            actor_id=actor_id,
        )
        return page

    def _require_parent(self, project_id: int, parent_id: int) -> WikiPage:
        parent = self.page_repo.find_by_id(parent_id)
        if parent is None:
            raise WikiValidationError("親ページが存在しません")
        if parent.project_id != project_id:
            raise WikiValidationError("親ページは同じプロジェクトに属している必要があります")
        return parent

    def _is_descendant(self, candidate: WikiPage, ancestor_id: int) -> bool:
        seen = set()
        node: Optional[WikiPage] = candidate
        while node is not None and node.id not in seen:
            if node.id == ancestor_id:
                return True
            seen.add(node.id)
            node = self.page_repo.find_by_id(node.parent_id) if node.parent_id else None
        return False


class WikiChangeService:
    """作業項目に紐づく変更提案のビジネスロジック"""

    def __init__(
        self,
        change_repo: WikiPageChangeRepository | None = None,
        page_repo: WikiPageRepository | None = None,
        hasher: ContentHasher | None = None,
        item_resolver: WorkItemResolver | None = None,
    ) -> None:
        self.change_repo = change_repo or WikiPageChangeRepository()
        self.page_repo = page_repo or WikiPageRepository()
        self.hasher = hasher or ContentHasher()
        self._item_resolver = item_resolver

    @property
    def item_resolver(self) -> WorkItemResolver:
        return self._item_resolver or get_work_item_resolver()

    def create(
        self,
        page_id: int,
        item_type: WorkItemType | str,
        item_id: int,
        snapshot: str,
        actor_id: int,
        change_type: WikiChangeType | str = WikiChangeType.UPDATE,
    ) -> WikiPageChange:
        """現在のページハッシュを基準とした変更提案を作成"""

        item_type = WorkItemType.parse(item_type, "作業項目の種別が不正です")
        change_type = WikiChangeType.parse(change_type, "変更種別が不正です")
        snapshot_hash = self._snapshot_hash(snapshot)

        with wiki_transaction():
            page = self.page_repo.find_by_id(page_id, refresh=True)
            if page is None:
                raise WikiPageNotFoundError(f"wiki page {page_id} not found")

            ref = self.item_resolver.resolve_item(item_type, item_id)
            if ref is None:
                raise WikiValidationError("作業項目が存在しません")
            if not ref.belongs_to(page.project_id):
                raise WikiValidationError("作業項目はページと同じプロジェクトに属している必要があります")

            now = utc_now()
            change = WikiPageChange(
                wiki_page_id=page.id,
                project_id=page.project_id,
                item_type=item_type.value,
                item_id=item_id,
                base_hash=page.content_hash,
                snapshot=snapshot,
                snapshot_hash=snapshot_hash,
                delta=build_delta(page.content, snapshot) if settings.wiki_record_delta else None,
                change_type=change_type.value,
                status=WikiChangeStatus.PENDING.value,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self.change_repo.add(change)

        log_wiki_info(
            logger,
            f"Wiki change proposed for page {page_id} by {item_type.value} {item_id}",
            "wiki.change.created",
            change_id=change.id,
            page_id=page_id,
            item_type=item_type.value,
            item_id=item_id,
            actor_id=actor_id,
        )
        return change

    def get(self, change_id: int) -> WikiPageChange:
        change = self.change_repo.find_by_id(change_id, refresh=True)
        if change is None:
            raise WikiChangeNotFoundError(f"wiki change {change_id} not found")
        return change

    def transition(
        self,
        change: WikiPageChange,
        new_status: WikiChangeStatus | str,
        *,
        merged_at: Optional[datetime] = None,
    ) -> WikiPageChange:
        """状態遷移表に従って状態を変更する（コミットしない）

        書き込みは読み込み時の状態を条件とした UPDATE で行う。その間に
        別の接続が状態を変えていれば :class:`WikiInvalidStateTransitionError`
        を送出し、呼び出し側のロールバックで同じトランザクション内の
        ページ更新も取り消される。
        """

        target = ensure_transition(change.change_status, new_status)
        now = utc_now()
        values = {"status": target.value, "updated_at": now}
        if target is WikiChangeStatus.MERGED:
            values["merged_at"] = merged_at or now
        return self._swap_status(change, values)

    def touch(self, change: WikiPageChange) -> WikiPageChange:
        """状態を変えずに ``updated_at`` だけ進める。状態が変わっていれば遷移と同様に失敗する。"""

        return self._swap_status(change, {"status": change.status, "updated_at": utc_now()})

    def _swap_status(self, change: WikiPageChange, values: Dict[str, object]) -> WikiPageChange:
        expected = change.status
        swapped = self.change_repo.compare_and_swap_status(
            change.id, expected_status=expected, values=values
        )
        if not swapped:
            current = self.change_repo.current_status(change.id)
            if current is None:
                raise WikiChangeNotFoundError(f"wiki change {change.id} not found")
            raise WikiInvalidStateTransitionError(
                current,
                values["status"],
                message=f"change {change.id} is {current} and can no longer move from {expected}",
            )

        # 書き込み済みの値なのでセッションの変更として扱わない
        for key, value in values.items():
            set_committed_value(change, key, value)
        return change

    def update_status(
        self,
        change_id: int,
        new_status: WikiChangeStatus | str,
        *,
        merged_at: Optional[datetime] = None,
    ) -> WikiPageChange:
        with wiki_transaction():
            change = self.change_repo.find_by_id(change_id, refresh=True)
            if change is None:
                raise WikiChangeNotFoundError(f"wiki change {change_id} not found")
            self.transition(change, new_status, merged_at=merged_at)
        return change

    def update_snapshot(self, change_id: int, snapshot: str, actor_id: int) -> WikiPageChange:
        """作成者が保留中の提案内容を差し替える。``base_hash`` は維持する。"""

        snapshot_hash = self._snapshot_hash(snapshot)
        with wiki_transaction():
            change = self.change_repo.find_by_id(change_id, refresh=True)
            if change is None:
                raise WikiChangeNotFoundError(f"wiki change {change_id} not found")
            if change.created_by_id != actor_id:
                raise WikiAccessDeniedError("提案者のみが変更内容を編集できます")
            if change.change_status is not WikiChangeStatus.PENDING:
                raise WikiInvalidStateTransitionError(
                    change.status, message="only pending changes can be edited"
                )

            change.snapshot = snapshot
            change.snapshot_hash = snapshot_hash
            if settings.wiki_record_delta:
                change.delta = build_delta(change.page.content, snapshot)
            change.updated_at = utc_now()
        return change

    def delete(self, change_id: int, actor_id: int) -> None:
        """保留中の提案のみ削除できる"""

        with wiki_transaction():
            change = self.change_repo.find_by_id(change_id, refresh=True)
            if change is None:
                raise WikiChangeNotFoundError(f"wiki change {change_id} not found")
            if change.change_status is not WikiChangeStatus.PENDING:
                raise WikiInvalidStateTransitionError(
                    change.status, message="only pending changes can be deleted"
                )
            self.change_repo.delete(change)

        log_wiki_info(
            logger,
            f"Wiki change deleted: {change_id}",
            "wiki.change.deleted",
            change_id=change_id,
            actor_id=actor_id,
        )

    def list_by_page(
        self,
        page_id: int,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        status: Optional[str] = None,
    ) -> PaginatedResult[WikiPageChange]:
        if self.page_repo.find_by_id(page_id) is None:
            raise WikiPageNotFoundError(f"wiki page {page_id} not found")
        if status:
            status = WikiChangeStatus.parse(status, "変更提案の状態が不正です").value
        params = PaginationParams(page, page_size)
        items, total = self.change_repo.find_by_page(
            page_id, offset=params.offset, limit=params.limit, status=status
        )
        return PaginatedResult(items=items, total=total, page=params.page, page_size=params.page_size)

    def list_pending_for_page(self, page_id: int) -> List[WikiPageChange]:
        if self.page_repo.find_by_id(page_id) is None:
            raise WikiPageNotFoundError(f"wiki page {page_id} not found")
        return self.change_repo.find_pending_by_page(page_id)

    def list_by_item(self, item_type: WorkItemType | str, item_id: int) -> List[WikiPageChange]:
        item_type = WorkItemType.parse(item_type, "作業項目の種別が不正です")
        return self.change_repo.find_by_item(item_type, item_id)

    def list_pending_by_item(self, item_type: WorkItemType | str, item_id: int) -> List[WikiPageChange]:
        item_type = WorkItemType.parse(item_type, "作業項目の種別が不正です")
        return self.change_repo.find_pending_by_item(item_type, item_id)

    def _snapshot_hash(self, snapshot: str) -> str:
        if not isinstance(snapshot, str) or not snapshot.strip():
            raise WikiValidationError("変更内容は必須です")
        return self.hasher.hash(snapshot)


__all__ = ["WikiChangeService", "WikiPageService", "build_delta"]
