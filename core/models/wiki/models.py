"""Wiki機能のSQLAlchemyモデル."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import BigInt, db
from core.time import isoformat_or_none, utc_now
from features.wiki.domain.entities import (
    WikiChangeStatus,
    WikiChangeType,
    WikiPageStatus,
)
from features.wiki.domain.hashing import HASH_LENGTH


class WikiPage(db.Model):
    """Wikiページモデル

    ``content`` と ``content_hash`` は常に同時に更新される。書き換えは
    ``WikiPageRepository.compare_and_swap_content`` のみが行う。
    """

    __tablename__ = "wiki_pages"
    __table_args__ = (
        db.UniqueConstraint("project_id", "slug", name="uq_wiki_pages_project_slug"),
    )

    id: Mapped[int] = mapped_column(BigInt, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(BigInt, nullable=False, index=True)
    slug: Mapped[str] = mapped_column(db.String(255), nullable=False)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    content: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    content_hash: Mapped[str] = mapped_column(db.String(HASH_LENGTH), nullable=False)
    version: Mapped[int] = mapped_column(db.Integer, nullable=False, default=1)

    # 編集上の状態（マージ状態とは独立）
    status: Mapped[str] = mapped_column(
        db.String(50), nullable=False, default=WikiPageStatus.DRAFT.value
    )

    # 階層構造
    parent_id: Mapped[int | None] = mapped_column(
        BigInt, db.ForeignKey("wiki_pages.id"), nullable=True, index=True
    )
    sort_order: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)

    # ユーザーは外部システムが管理するためIDのみ保持
    created_by_id: Mapped[int] = mapped_column(BigInt, nullable=False, index=True)
    updated_by_id: Mapped[int] = mapped_column(BigInt, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utc_now
    )

    parent: Mapped["WikiPage | None"] = relationship(
        "WikiPage",
        remote_side=[id],
        back_populates="children",
    )
    children: Mapped[list["WikiPage"]] = relationship(
        "WikiPage",
        back_populates="parent",
    )
    changes: Mapped[list["WikiPageChange"]] = relationship(
        "WikiPageChange",
        back_populates="page",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<WikiPage {self.slug} v{self.version}>"

    def to_dict(self) -> dict[str, object | None]:
        """APIレスポンス用の辞書形式で返す"""

        return {
            "id": self.id,
            "projectId": self.project_id,
            "slug": self.slug,
            "title": self.title,
            "content": self.content,
            "contentHash": self.content_hash,
            "version": self.version,
            "status": self.status,
            "parentId": self.parent_id,
            "sortOrder": self.sort_order,
            "createdBy": self.created_by_id,
            "updatedBy": self.updated_by_id,
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }


class WikiPageChange(db.Model):
    """作業項目に紐づくページ変更提案

    ``base_hash`` は作成時点のページハッシュで、競合解決時以外は変更しない。
    """

    __tablename__ = "wiki_page_changes"
    __table_args__ = (
        db.Index("ix_wiki_page_changes_item", "item_type", "item_id"),
        db.Index("ix_wiki_page_changes_page_status", "wiki_page_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigInt, primary_key=True, autoincrement=True)
    wiki_page_id: Mapped[int] = mapped_column(
        BigInt,
        db.ForeignKey("wiki_pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(BigInt, nullable=False, index=True)
    item_type: Mapped[str] = mapped_column(db.String(50), nullable=False)
    item_id: Mapped[int] = mapped_column(BigInt, nullable=False)

    base_hash: Mapped[str] = mapped_column(db.String(HASH_LENGTH), nullable=False)
    delta: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    snapshot: Mapped[str] = mapped_column(db.Text, nullable=False)
    snapshot_hash: Mapped[str] = mapped_column(db.String(HASH_LENGTH), nullable=False)

    change_type: Mapped[str] = mapped_column(
        db.String(50), nullable=False, default=WikiChangeType.UPDATE.value
    )
    status: Mapped[str] = mapped_column(
        db.String(50), nullable=False, default=WikiChangeStatus.PENDING.value
    )
    merged_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)

    created_by_id: Mapped[int] = mapped_column(BigInt, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=utc_now
    )

    page: Mapped[WikiPage] = relationship(
        "WikiPage",
        back_populates="changes",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<WikiPageChange {self.id} page={self.wiki_page_id} {self.status}>"

    @property
    def change_status(self) -> WikiChangeStatus:
        return WikiChangeStatus.parse(self.status)


__all__ = ["WikiPage", "WikiPageChange"]
