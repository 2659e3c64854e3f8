"""Wikiユースケースの単体テスト"""

from __future__ import annotations

import pytest

from conftest import ACTOR_ID, OTHER_ACTOR_ID, PROJECT_ID
from features.wiki.application.dto import (
    WikiChangeProposalInput,
    WikiChangeResolutionInput,
    WikiContentEditInput,
    WikiItemCompletionInput,
    WikiPageCreateInput,
    WikiPageMetadataInput,
    WikiPageStatusInput,
)
from features.wiki.application.use_cases import (
    WikiChangeProposalUseCase,
    WikiChangeResolutionUseCase,
    WikiItemCompletionUseCase,
    WikiPageContentEditUseCase,
    WikiPageCreationUseCase,
    WikiPageMetadataUpdateUseCase,
    WikiPageStatusUpdateUseCase,
)
from features.wiki.domain.exceptions import WikiStaleContentError, WikiValidationError


def _create(page_service, title="トップページ", content="<p>v0</p>"):
    return WikiPageCreationUseCase(page_service).execute(
        WikiPageCreateInput(
            project_id=PROJECT_ID,
            title=title,
            content=content,
            parent_id=None,
            sort_order=None,
            author_id=ACTOR_ID,
        )
    )


def test_page_creation_use_case_creates_page(page_service):
    page = _create(page_service, title="  トップページ  ")

    assert page.title == "トップページ"
    assert page.version == 1
    assert page.created_by_id == ACTOR_ID


def test_page_creation_use_case_validates_input(page_service):
    with pytest.raises(WikiValidationError):
        WikiPageCreationUseCase(page_service).execute(
            WikiPageCreateInput(
                project_id=PROJECT_ID,
                title="",
                content="",
                parent_id=None,
                sort_order=None,
                author_id=ACTOR_ID,
            )
        )


def test_metadata_and_status_use_cases(page_service):
    page = _create(page_service)

    renamed = WikiPageMetadataUpdateUseCase(page_service).execute(
        WikiPageMetadataInput(page_id=page.id, title="概要", parent_id=None, sort_order="2", editor_id=OTHER_ACTOR_ID)
    )
    archived = WikiPageStatusUpdateUseCase(page_service).execute(
        WikiPageStatusInput(page_id=page.id, status="Archived", editor_id=OTHER_ACTOR_ID)
    )

    assert renamed.title == "概要"
    assert renamed.sort_order == 2
    assert archived.status == "Archived"
    assert archived.version == 1


def test_content_edit_use_case_checks_base_hash(page_service):
    page = _create(page_service)
    base = page.content_hash
    use_case = WikiPageContentEditUseCase(page_service)

    edited = use_case.execute(
        WikiContentEditInput(page_id=page.id, content="<p>v1</p>", base_hash=base, editor_id=ACTOR_ID)
    )
    assert edited.version == 2

    with pytest.raises(WikiStaleContentError):
        use_case.execute(
            WikiContentEditInput(page_id=page.id, content="<p>v1'</p>", base_hash=base, editor_id=OTHER_ACTOR_ID)
        )


def test_proposal_completion_and_resolution_flow(page_service, change_service, merge_engine, resolver):
    page = _create(page_service)
    propose = WikiChangeProposalUseCase(change_service)
    first = propose.execute(
        WikiChangeProposalInput(page_id=page.id, item_type="issue", item_id=42, content="<p>a</p>", author_id=ACTOR_ID)
    )
    second = propose.execute(
        WikiChangeProposalInput(
            page_id=page.id,
            item_type="issue",
            item_id=42,
            content="<p>b</p>",
            author_id=OTHER_ACTOR_ID,
            change_type="create",
        )
    )
    assert second.change_type == "create"

    summary = WikiItemCompletionUseCase(merge_engine).execute(
        WikiItemCompletionInput(item_type="issue", item_id="42", actor_id=ACTOR_ID)
    )

    assert [r.change.id for r in summary.merged] == [first.id]
    assert [r.change.id for r in summary.conflicted] == [second.id]

    result = WikiChangeResolutionUseCase(resolver).execute(
        WikiChangeResolutionInput(change_id=second.id, content="<p>a + b</p>", editor_id=OTHER_ACTOR_ID)
    )

    assert result.merged
    assert page_service.get_page(page.id).version == 3


def test_proposal_use_case_requires_content(change_service, page_service):
    page = _create(page_service)

    with pytest.raises(WikiValidationError):
        WikiChangeProposalUseCase(change_service).execute(
            WikiChangeProposalInput(page_id=page.id, item_type="issue", item_id=1, content="", author_id=ACTOR_ID)
        )


def test_resolution_use_case_requires_content(resolver):
    with pytest.raises(WikiValidationError):
        WikiChangeResolutionUseCase(resolver).execute(
            WikiChangeResolutionInput(change_id=1, content=" ", editor_id=ACTOR_ID)
        )
