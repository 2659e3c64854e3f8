"""
Wiki機能のリポジトリ実装 - データアクセス層

リポジトリはコミットしない。トランザクション境界はアプリケーション層が
``wiki_transaction`` で管理する。
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import asc, desc, func, select, update

from core.db import db
from core.models.wiki.models import WikiPage, WikiPageChange
from features.wiki.domain.entities import WikiChangeStatus, WorkItemType


class WikiPageRepository:
    """Wikiページのデータアクセス"""

    def find_by_id(self, page_id: int, *, refresh: bool = False) -> Optional[WikiPage]:
        """IDでページを検索（``refresh`` でDBの最新値を読み直す）"""
        if refresh:
            return db.session.get(WikiPage, page_id, populate_existing=True)
        return db.session.get(WikiPage, page_id)

    def find_by_slug(self, project_id: int, slug: str) -> Optional[WikiPage]:
        """プロジェクト内のスラッグでページを検索"""
        return db.session.execute(
            select(WikiPage).where(WikiPage.project_id == project_id, WikiPage.slug == slug)
        ).scalar_one_or_none()

    def slug_exists(self, project_id: int, slug: str, exclude_page_id: Optional[int] = None) -> bool:
        stmt = select(WikiPage.id).where(WikiPage.project_id == project_id, WikiPage.slug == slug)
        if exclude_page_id is not None:
            stmt = stmt.where(WikiPage.id != exclude_page_id)
        return db.session.execute(stmt.limit(1)).first() is not None

    def find_by_project(
        self,
        project_id: int,
        *,
        offset: int = 0,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> Tuple[List[WikiPage], int]:
        """プロジェクトのページ一覧と総件数を取得"""
        stmt = select(WikiPage).where(WikiPage.project_id == project_id)
        if status:
            stmt = stmt.where(WikiPage.status == status)

        total = db.session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        pages = db.session.execute(
            stmt.order_by(desc(WikiPage.updated_at), desc(WikiPage.id)).offset(offset).limit(limit)
        ).scalars().all()
        return list(pages), int(total)

    def find_all_by_project(self, project_id: int) -> List[WikiPage]:
        """ツリー構築用に全ページを並び順で取得"""
        return list(
            db.session.execute(
                select(WikiPage)
                .where(WikiPage.project_id == project_id)
                .order_by(asc(WikiPage.sort_order), asc(WikiPage.title), asc(WikiPage.id))
            ).scalars()
        )

    def find_children(self, page_id: int) -> List[WikiPage]:
        return list(
            db.session.execute(
                select(WikiPage).where(WikiPage.parent_id == page_id).order_by(asc(WikiPage.sort_order))
            ).scalars()
        )

    def add(self, page: WikiPage) -> WikiPage:
        db.session.add(page)
        db.session.flush()
        return page

    def delete(self, page: WikiPage) -> None:
        db.session.delete(page)
        db.session.flush()

    def compare_and_swap_content(
        self,
        page_id: int,
        *,
        expected_hash: str,
        content: str,
        content_hash: str,
        actor_id: int,
        now: datetime,
    ) -> bool:
        """``content_hash`` が期待値と一致する場合のみ本文を書き換える。

        比較と書き込みは単一の条件付き UPDATE で行われ、version は
        同じ文の中で +1 される。一致する行がなければ ``False`` を返す。
        """
        result = db.session.execute(
            update(WikiPage)
            .where(WikiPage.id == page_id, WikiPage.content_hash == expected_hash)
            .values(
                content=content,
                content_hash=content_hash,
                version=WikiPage.version + 1,
                updated_by_id=actor_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def current_hash(self, page_id: int) -> Optional[str]:
        """ORMキャッシュを介さずに現在のハッシュを取得"""
        return db.session.execute(
            select(WikiPage.content_hash).where(WikiPage.id == page_id)
        ).scalar_one_or_none()


class WikiPageChangeRepository:
    """Wiki変更提案のデータアクセス"""

    def find_by_id(self, change_id: int, *, refresh: bool = False) -> Optional[WikiPageChange]:
        if refresh:
            return db.session.get(WikiPageChange, change_id, populate_existing=True)
        return db.session.get(WikiPageChange, change_id)

    def find_by_page(
        self,
        page_id: int,
        *,
        offset: int = 0,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> Tuple[List[WikiPageChange], int]:
        """ページの変更履歴（新しい順）と総件数を取得"""
        stmt = select(WikiPageChange).where(WikiPageChange.wiki_page_id == page_id)
        if status:
            stmt = stmt.where(WikiPageChange.status == status)

        total = db.session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        changes = db.session.execute(
            stmt.order_by(desc(WikiPageChange.created_at), desc(WikiPageChange.id))
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return list(changes), int(total)

    def find_pending_by_page(self, page_id: int) -> List[WikiPageChange]:
        """ページの保留中の提案を古い順に取得"""
        return list(
            db.session.execute(
                select(WikiPageChange)
                .where(
                    WikiPageChange.wiki_page_id == page_id,
                    WikiPageChange.status == WikiChangeStatus.PENDING.value,
                )
                .order_by(asc(WikiPageChange.created_at), asc(WikiPageChange.id))
            ).scalars()
        )

    def find_by_item(self, item_type: WorkItemType, item_id: int) -> List[WikiPageChange]:
        """作業項目に紐づく提案を新しい順に取得"""
        return list(
            db.session.execute(
                select(WikiPageChange)
                .where(
                    WikiPageChange.item_type == item_type.value,
                    WikiPageChange.item_id == item_id,
                )
                .order_by(desc(WikiPageChange.created_at), desc(WikiPageChange.id))
            ).scalars()
        )

    def find_pending_by_item(self, item_type: WorkItemType, item_id: int) -> List[WikiPageChange]:
        """作業項目に紐づく保留中の提案を古い順に取得"""
        return list(
            db.session.execute(
                select(WikiPageChange)
                .where(
                    WikiPageChange.item_type == item_type.value,
                    WikiPageChange.item_id == item_id,
                    WikiPageChange.status == WikiChangeStatus.PENDING.value,
                )
                .order_by(asc(WikiPageChange.created_at), asc(WikiPageChange.id))
            ).scalars()
        )

    def compare_and_swap_status(self, change_id: int, *, expected_status: str, values: dict) -> bool:
        """状態が ``expected_status`` のままである場合のみ提案を更新する。

        読み込み後に他の接続が状態を確定させていれば ``False`` を返す。
        """
        result = db.session.execute(
            update(WikiPageChange)
            .where(WikiPageChange.id == change_id, WikiPageChange.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def current_status(self, change_id: int) -> Optional[str]:
        """ORMキャッシュを介さずに現在の状態を取得"""
        return db.session.execute(
            select(WikiPageChange.status).where(WikiPageChange.id == change_id)
        ).scalar_one_or_none()

    def add(self, change: WikiPageChange) -> WikiPageChange:
        db.session.add(change)
        db.session.flush()
        return change

    def delete(self, change: WikiPageChange) -> None:
        db.session.delete(change)
        db.session.flush()


__all__ = ["WikiPageChangeRepository", "WikiPageRepository"]
