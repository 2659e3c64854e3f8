import pytest

from features.wiki.domain.commands import (
    WikiChangeProposalCommand,
    WikiPageCommandFactory,
    WikiPageCreationCommand,
)
from features.wiki.domain.entities import WikiChangeType, WikiPageStatus, WorkItemType
from features.wiki.domain.exceptions import WikiValidationError


def test_build_creation_command_normalizes_values() -> None:
    factory = WikiPageCommandFactory()

    command = factory.build_creation_command(
        project_id="3",
        title="  Title  ",
        content="  Content  ",
        parent_id="42",
        sort_order="5",
        author_id=10,
    )

    assert isinstance(command, WikiPageCreationCommand)
    assert command.project_id == 3
    assert command.title == "Title"
    # 本文はハッシュ対象のため空白を保持する
    assert command.content == "  Content  "
    assert command.parent_id == 42
    assert command.sort_order == 5
    assert command.author_id == 10


def test_build_creation_command_allows_empty_content() -> None:
    command = WikiPageCommandFactory().build_creation_command(
        project_id=1,
        title="Empty",
        content=None,
        parent_id=None,
        sort_order=None,
        author_id=1,
    )

    assert command.content == ""
    assert command.parent_id is None
    assert command.sort_order == 0


def test_build_creation_command_validates_title() -> None:
    with pytest.raises(WikiValidationError) as excinfo:
        WikiPageCommandFactory().build_creation_command(
            project_id=1,
            title=" ",
            content="",
            parent_id=None,
            sort_order=None,
            author_id=1,
        )

    assert "タイトルは必須です" in str(excinfo.value)


@pytest.mark.parametrize("parent_id", ["abc", 0, -3])
def test_build_creation_command_rejects_invalid_parent(parent_id) -> None:
    with pytest.raises(WikiValidationError):
        WikiPageCommandFactory().build_creation_command(
            project_id=1,
            title="Child",
            content="",
            parent_id=parent_id,
            sort_order=None,
            author_id=1,
        )


def test_build_proposal_command_parses_item_reference() -> None:
    command = WikiPageCommandFactory().build_proposal_command(
        page_id=4,
        item_type="issue",
        item_id="42",
        snapshot="<p>new</p>\n",
        change_type=None,
        author_id=2,
    )

    assert isinstance(command, WikiChangeProposalCommand)
    assert command.item_type is WorkItemType.ISSUE
    assert command.item_id == 42
    assert command.snapshot == "<p>new</p>\n"
    assert command.change_type is WikiChangeType.UPDATE


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"item_type": "epic"}, "作業項目の種別が不正です"),
        ({"item_id": None}, "作業項目の指定が不正です"),
        ({"snapshot": "   "}, "変更内容は必須です"),
        ({"change_type": "rewrite"}, "変更種別が不正です"),
    ],
)
def test_build_proposal_command_validation(overrides, message) -> None:
    kwargs = {
        "page_id": 1,
        "item_type": "feature",
        "item_id": 1,
        "snapshot": "<p>x</p>",
        "change_type": None,
        "author_id": 1,
    }
    kwargs.update(overrides)

    with pytest.raises(WikiValidationError) as excinfo:
        WikiPageCommandFactory().build_proposal_command(**kwargs)

    assert message in str(excinfo.value)


def test_build_status_command_rejects_unknown_status() -> None:
    factory = WikiPageCommandFactory()

    command = factory.build_status_command(page_id=1, status="Published", editor_id=1)
    assert command.status is WikiPageStatus.PUBLISHED

    with pytest.raises(WikiValidationError):
        factory.build_status_command(page_id=1, status="Hidden", editor_id=1)


def test_build_content_edit_command_normalises_blank_base_hash() -> None:
    command = WikiPageCommandFactory().build_content_edit_command(
        page_id=1, content="<p>x</p>", base_hash="  ", editor_id=1
    )

    assert command.base_hash is None


def test_build_item_merge_command_requires_actor() -> None:
    with pytest.raises(WikiValidationError) as excinfo:
        WikiPageCommandFactory().build_item_merge_command(item_type="issue", item_id=1, actor_id=0)

    assert "操作ユーザーが特定できません" in str(excinfo.value)
