"""
``flask merge-item`` コマンドのテスト
"""

from conftest import ACTOR_ID


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=["merge-item", *args])


def test_merge_item_merges_pending_changes(app, make_page, change_service, page_service):
    page = make_page(content="<p>v0</p>")
    change = change_service.create(page.id, "issue", 42, "<p>v1</p>", ACTOR_ID)

    result = _invoke(app, "--item-type", "issue", "--item-id", "42", "--actor-id", str(ACTOR_ID))

    assert result.exit_code == 0, result.output
    assert f"change {change.id}: merged" in result.output
    assert "merged=1 conflicted=0" in result.output
    assert page_service.get_page(page.id).content == "<p>v1</p>"


def test_merge_item_reports_conflicts(app, make_page, change_service, page_service):
    page = make_page(content="<p>v0</p>")
    change_service.create(page.id, "feature", 3, "<p>proposal</p>", ACTOR_ID)
    page_service.edit_content(page.id, "<p>direct</p>", ACTOR_ID)

    result = _invoke(app, "--item-type", "feature", "--item-id", "3", "--actor-id", str(ACTOR_ID))

    assert result.exit_code == 0, result.output
    assert "merged=0 conflicted=1" in result.output
    assert page_service.get_page(page.id).content == "<p>direct</p>"


def test_merge_item_rejects_unknown_item_type(app):
    result = _invoke(app, "--item-type", "epic", "--item-id", "1", "--actor-id", "1")

    assert result.exit_code != 0
