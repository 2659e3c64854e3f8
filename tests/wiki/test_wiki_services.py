"""
Wikiページサービスのテスト
"""

import pytest

from conftest import ACTOR_ID, OTHER_ACTOR_ID, PROJECT_ID
from core.models.wiki.models import WikiPage, WikiPageChange
from features.wiki.domain.entities import WikiPageStatus
from features.wiki.domain.exceptions import (
    WikiOperationError,
    WikiPageNotFoundError,
    WikiStaleContentError,
    WikiValidationError,
)
from features.wiki.domain.hashing import compute_content_hash


class TestWikiPageCreation:
    """ページ作成のテスト"""

    def test_create_page_sets_hash_and_version(self, make_page):
        page = make_page(title="テストページ", content="<p>hello</p>")

        assert page.id is not None
        assert page.project_id == PROJECT_ID
        assert page.title == "テストページ"
        assert page.content == "<p>hello</p>"
        assert page.content_hash == compute_content_hash("<p>hello</p>")
        assert page.version == 1
        assert page.status == WikiPageStatus.DRAFT.value
        assert page.created_by_id == ACTOR_ID
        assert page.updated_by_id == ACTOR_ID

    def test_slug_is_unique_within_project(self, make_page):
        first = make_page(title="Release Notes")
        second = make_page(title="Release Notes")
        other_project = make_page(title="Release Notes", project_id=PROJECT_ID + 1)

        assert first.slug == "release-notes"
        assert second.slug == "release-notes-1"
        assert other_project.slug == "release-notes"

    def test_empty_content_is_allowed(self, make_page):
        page = make_page(content="")

        assert page.content_hash == compute_content_hash("")

    def test_blank_title_is_rejected(self, page_service):
        with pytest.raises(WikiValidationError):
            page_service.create_page(project_id=PROJECT_ID, title="  ", content="", actor_id=ACTOR_ID)

    def test_parent_must_exist_in_same_project(self, make_page):
        foreign = make_page(title="Foreign", project_id=PROJECT_ID + 1)

        with pytest.raises(WikiValidationError):
            make_page(title="Child", parent_id=foreign.id)
        with pytest.raises(WikiValidationError):
            make_page(title="Orphan", parent_id=9999)


class TestWikiPageQueries:
    """ページ取得・一覧のテスト"""

    def test_get_page_and_slug_lookup(self, page_service, make_page):
        page = make_page(title="Lookup")

        assert page_service.get_page(page.id).id == page.id
        assert page_service.get_page_by_slug(PROJECT_ID, "lookup").id == page.id

        with pytest.raises(WikiPageNotFoundError):
            page_service.get_page(9999)
        with pytest.raises(WikiPageNotFoundError):
            page_service.get_page_by_slug(PROJECT_ID, "missing")

    def test_list_pages_is_paginated_and_filtered(self, page_service, make_page):
        pages = [make_page(title=f"Page {i}") for i in range(3)]
        make_page(title="Elsewhere", project_id=PROJECT_ID + 1)
        page_service.update_status(pages[0].id, "Published", ACTOR_ID)

        first = page_service.list_pages(PROJECT_ID, page=1, page_size=2)
        assert first.total == 3
        assert len(first.items) == 2
        assert first.has_next is True
        # 最後に更新されたページが先頭
        assert first.items[0].id == pages[0].id

        second = page_service.list_pages(PROJECT_ID, page=2, page_size=2)
        assert len(second.items) == 1
        assert second.has_next is False

        published = page_service.list_pages(PROJECT_ID, status="Published")
        assert [p.id for p in published.items] == [pages[0].id]

    def test_list_pages_rejects_unknown_status(self, page_service):
        with pytest.raises(WikiValidationError):
            page_service.list_pages(PROJECT_ID, status="Hidden")

    def test_page_tree_nests_children_by_sort_order(self, page_service, make_page):
        root = make_page(title="Root")
        second = make_page(title="Second", parent_id=root.id, sort_order=2)
        first = make_page(title="First", parent_id=root.id, sort_order=1)
        grandchild = make_page(title="Leaf", parent_id=first.id)

        tree = page_service.get_page_tree(PROJECT_ID)

        assert [node.page.id for node in tree] == [root.id]
        assert [node.page.id for node in tree[0].children] == [first.id, second.id]
        assert [node.page.id for node in tree[0].children[0].children] == [grandchild.id]

        as_dict = tree[0].to_dict()
        assert "content" not in as_dict
        assert as_dict["children"][0]["title"] == "First"


class TestWikiPageMetadata:
    """タイトル・階層の更新テスト"""

    def test_update_metadata_keeps_content_and_version(self, page_service, make_page):
        page = make_page(title="Old Title", content="<p>body</p>")
        original_hash = page.content_hash

        updated = page_service.update_metadata(
            page.id, title="New Title", parent_id=None, sort_order=3, actor_id=OTHER_ACTOR_ID
        )

        assert updated.title == "New Title"
        assert updated.slug == "new-title"
        assert updated.sort_order == 3
        assert updated.updated_by_id == OTHER_ACTOR_ID
        assert updated.version == 1
        assert updated.content_hash == original_hash

    def test_self_parent_is_rejected(self, page_service, make_page):
        page = make_page()

        with pytest.raises(WikiOperationError):
            page_service.update_metadata(page.id, title=page.title, parent_id=page.id, sort_order=0, actor_id=ACTOR_ID)

    def test_cycle_is_rejected(self, page_service, make_page):
        root = make_page(title="Root")
        child = make_page(title="Child", parent_id=root.id)

        with pytest.raises(WikiOperationError):
            page_service.update_metadata(root.id, title="Root", parent_id=child.id, sort_order=0, actor_id=ACTOR_ID)

        assert page_service.get_page(root.id).parent_id is None

    def test_update_status(self, page_service, make_page):
        page = make_page()

        updated = page_service.update_status(page.id, WikiPageStatus.ARCHIVED, ACTOR_ID)

        assert updated.status == "Archived"
        assert updated.version == 1


class TestWikiPageDeletion:
    """ページ削除のテスト"""

    def test_page_with_children_cannot_be_deleted(self, page_service, make_page):
        root = make_page(title="Root")
        make_page(title="Child", parent_id=root.id)

        with pytest.raises(WikiOperationError):
            page_service.delete_page(root.id, ACTOR_ID)

    def test_delete_removes_change_proposals(self, page_service, change_service, make_page, db_session):
        page = make_page()
        change = change_service.create(page.id, "issue", 1, "<p>v1</p>", ACTOR_ID)

        page_service.delete_page(page.id, ACTOR_ID)

        assert db_session.get(WikiPage, page.id) is None
        assert db_session.get(WikiPageChange, change.id) is None


class TestApplyContent:
    """本文書き込み（compare-and-swap）のテスト"""

    def test_apply_content_updates_hash_and_version(self, page_service, make_page, db_session):
        page = make_page(content="<p>v0</p>")

        updated = page_service.apply_content(page.id, "<p>v1</p>", OTHER_ACTOR_ID, expected_hash=page.content_hash)
        db_session.commit()

        assert updated.content == "<p>v1</p>"
        assert updated.content_hash == compute_content_hash("<p>v1</p>")
        assert updated.version == 2
        assert updated.updated_by_id == OTHER_ACTOR_ID

    def test_hash_always_matches_content(self, page_service, make_page, db_session):
        page = make_page(content="a")
        for text in ["b", "c ", "c\n", ""]:
            page = page_service.apply_content(page.id, text, ACTOR_ID)
            db_session.commit()

            stored = page_service.page_repo.find_by_id(page.id, refresh=True)
            assert stored.content_hash == compute_content_hash(stored.content)
        assert page.version == 5

    def test_stale_expected_hash_is_rejected(self, page_service, make_page, db_session):
        page = make_page(content="<p>v0</p>")
        base = page.content_hash
        page_service.apply_content(page.id, "<p>other</p>", ACTOR_ID, expected_hash=base)
        db_session.commit()

        with pytest.raises(WikiStaleContentError) as excinfo:
            page_service.apply_content(page.id, "<p>mine</p>", OTHER_ACTOR_ID, expected_hash=base)
        db_session.rollback()

        assert excinfo.value.expected_hash == base
        assert excinfo.value.current_hash == compute_content_hash("<p>other</p>")
        stored = page_service.get_page(page.id)
        assert stored.content == "<p>other</p>"
        assert stored.version == 2

    def test_missing_page(self, page_service):
        with pytest.raises(WikiPageNotFoundError):
            page_service.apply_content(9999, "x", ACTOR_ID)


class TestEditContent:
    """直接編集のテスト"""

    def test_edit_without_base_hash_is_last_writer_wins(self, page_service, make_page):
        page = make_page(content="<p>v0</p>")
        page_service.edit_content(page.id, "<p>v1</p>", ACTOR_ID)

        updated = page_service.edit_content(page.id, "<p>v2</p>", OTHER_ACTOR_ID)

        assert updated.content == "<p>v2</p>"
        assert updated.version == 3

    def test_edit_with_stale_base_hash_is_rejected(self, page_service, make_page, caplog):
        page = make_page(content="<p>v0</p>")
        base = page.content_hash
        page_service.edit_content(page.id, "<p>v1</p>", ACTOR_ID, base_hash=base)

        with caplog.at_level("WARNING", logger="wiki"):
            with pytest.raises(WikiStaleContentError):
                page_service.edit_content(page.id, "<p>v1 bis</p>", OTHER_ACTOR_ID, base_hash=base)

        assert page_service.get_page(page.id).content == "<p>v1</p>"
        assert any(getattr(r, "event", None) == "wiki.page.stale_write" for r in caplog.records)
