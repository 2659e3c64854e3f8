"""Create wiki page, change proposal and log tables."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b30"
down_revision = None
branch_labels = None
depends_on = None


BigInt = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "wiki_pages",
        sa.Column("id", BigInt, primary_key=True, autoincrement=True),
        sa.Column("project_id", BigInt, nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="Draft"),
        sa.Column("parent_id", BigInt, sa.ForeignKey("wiki_pages.id"), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_id", BigInt, nullable=False),
        sa.Column("updated_by_id", BigInt, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "slug", name="uq_wiki_pages_project_slug"),
    )
    op.create_index("ix_wiki_pages_project_id", "wiki_pages", ["project_id"])
    op.create_index("ix_wiki_pages_parent_id", "wiki_pages", ["parent_id"])
    op.create_index("ix_wiki_pages_created_by_id", "wiki_pages", ["created_by_id"])
    op.create_index("ix_wiki_pages_updated_by_id", "wiki_pages", ["updated_by_id"])

    op.create_table(
        "wiki_page_changes",
        sa.Column("id", BigInt, primary_key=True, autoincrement=True),
        sa.Column(
            "wiki_page_id",
            BigInt,
            sa.ForeignKey("wiki_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("project_id", BigInt, nullable=False),
        sa.Column("item_type", sa.String(length=50), nullable=False),
        sa.Column("item_id", BigInt, nullable=False),
        sa.Column("base_hash", sa.String(length=64), nullable=False),
        sa.Column("delta", sa.Text(), nullable=True),
        sa.Column("snapshot", sa.Text(), nullable=False),
        sa.Column("snapshot_hash", sa.String(length=64), nullable=False),
        sa.Column("change_type", sa.String(length=50), nullable=False, server_default="update"),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="Pending"),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", BigInt, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_wiki_page_changes_wiki_page_id", "wiki_page_changes", ["wiki_page_id"])
    op.create_index("ix_wiki_page_changes_project_id", "wiki_page_changes", ["project_id"])
    op.create_index("ix_wiki_page_changes_created_by_id", "wiki_page_changes", ["created_by_id"])
    op.create_index("ix_wiki_page_changes_item", "wiki_page_changes", ["item_type", "item_id"])
    op.create_index(
        "ix_wiki_page_changes_page_status", "wiki_page_changes", ["wiki_page_id", "status"]
    )

    op.create_table(
        "log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("level", sa.String(length=50), nullable=False),
        sa.Column("event", sa.String(length=50), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("trace", sa.Text(), nullable=True),
        sa.Column("path", sa.String(length=255), nullable=True),
        sa.Column("request_id", sa.String(length=36), nullable=True),
        sa.Column("page_id", sa.Integer(), nullable=True),
        sa.Column("change_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_log_event", "log", ["event"])
    op.create_index("ix_log_page_id", "log", ["page_id"])
    op.create_index("ix_log_change_id", "log", ["change_id"])


def downgrade() -> None:
    op.drop_index("ix_log_change_id", table_name="log")
    op.drop_index("ix_log_page_id", table_name="log")
    op.drop_index("ix_log_event", table_name="log")
    op.drop_table("log")

    op.drop_index("ix_wiki_page_changes_page_status", table_name="wiki_page_changes")
    op.drop_index("ix_wiki_page_changes_item", table_name="wiki_page_changes")
    op.drop_index("ix_wiki_page_changes_created_by_id", table_name="wiki_page_changes")
    op.drop_index("ix_wiki_page_changes_project_id", table_name="wiki_page_changes")
    op.drop_index("ix_wiki_page_changes_wiki_page_id", table_name="wiki_page_changes")
    op.drop_table("wiki_page_changes")

    op.drop_index("ix_wiki_pages_updated_by_id", table_name="wiki_pages")
    op.drop_index("ix_wiki_pages_created_by_id", table_name="wiki_pages")
    op.drop_index("ix_wiki_pages_parent_id", table_name="wiki_pages")
    op.drop_index("ix_wiki_pages_project_id", table_name="wiki_pages")
    op.drop_table("wiki_pages")
