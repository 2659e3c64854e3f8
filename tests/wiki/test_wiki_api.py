"""
Wiki REST API のテスト
"""

import pytest

from conftest import PROJECT_ID
from features.wiki.domain.hashing import compute_content_hash


def _create_page(client, headers, **overrides):
    payload = {"title": "API Page", "content": "<p>v0</p>"}
    payload.update(overrides)
    response = client.post(f"/api/projects/{PROJECT_ID}/wiki", json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def _propose(client, headers, page_id, content, item_type="issue", item_id=42):
    response = client.post(
        f"/api/wiki/{page_id}/changes",
        json={"itemType": item_type, "itemId": item_id, "content": content},
        headers=headers,
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestAuthentication:
    """認証ヘッダーのテスト"""

    def test_missing_actor_header_returns_401(self, client):
        response = client.get(f"/api/projects/{PROJECT_ID}/wiki")

        assert response.status_code == 401
        assert response.get_json()["status"] == "unauthorized"

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_actor_header_returns_401(self, client, value):
        response = client.get(f"/api/projects/{PROJECT_ID}/wiki", headers={"X-User-Id": value})

        assert response.status_code == 401

    def test_health_check_does_not_require_actor(self, client):
        assert client.get("/api/health/live").status_code == 200


class TestPageEndpoints:
    """ページAPIのテスト"""

    def test_create_and_get_page(self, client, auth_headers):
        created = _create_page(client, auth_headers)

        assert created["projectId"] == PROJECT_ID
        assert created["slug"] == "api-page"
        assert created["contentHash"] == compute_content_hash("<p>v0</p>")
        assert created["version"] == 1
        assert created["createdBy"] == 7
        assert created["createdAt"].endswith("Z")

        fetched = client.get(f"/api/wiki/{created['id']}", headers=auth_headers).get_json()
        assert fetched["content"] == "<p>v0</p>"

        by_slug = client.get(f"/api/projects/{PROJECT_ID}/wiki/slug/api-page", headers=auth_headers)
        assert by_slug.get_json()["id"] == created["id"]

    def test_create_requires_title(self, client, auth_headers):
        response = client.post(f"/api/projects/{PROJECT_ID}/wiki", json={"content": "x"}, headers=auth_headers)

        assert response.status_code == 422
        body = response.get_json()
        assert body["status"] == "error"
        assert "title" in body["errors"]["json"]

    def test_blank_title_is_a_bad_request(self, client, auth_headers):
        response = client.post(f"/api/projects/{PROJECT_ID}/wiki", json={"title": "  "}, headers=auth_headers)

        assert response.status_code == 400

    def test_unknown_page_returns_404(self, client, auth_headers):
        response = client.get("/api/wiki/9999", headers=auth_headers)

        assert response.status_code == 404
        assert response.get_json()["code"] == 404

    def test_list_and_tree(self, client, auth_headers):
        root = _create_page(client, auth_headers, title="Root")
        _create_page(client, auth_headers, title="Child", parentId=root["id"])

        listing = client.get(
            f"/api/projects/{PROJECT_ID}/wiki?pageSize=1", headers=auth_headers
        ).get_json()
        assert listing["total"] == 2
        assert listing["pageSize"] == 1
        assert len(listing["wikiPages"]) == 1
        assert set(listing) == {"wikiPages", "total", "page", "pageSize"}

        tree = client.get(f"/api/projects/{PROJECT_ID}/wiki/tree", headers=auth_headers).get_json()
        assert [node["title"] for node in tree["wikiPages"]] == ["Root"]
        assert [node["title"] for node in tree["wikiPages"][0]["children"]] == ["Child"]

    def test_update_metadata_and_status(self, client, auth_headers):
        page = _create_page(client, auth_headers)

        updated = client.put(
            f"/api/wiki/{page['id']}", json={"title": "Renamed", "sortOrder": 4}, headers=auth_headers
        ).get_json()
        assert updated["title"] == "Renamed"
        assert updated["version"] == 1

        published = client.put(
            f"/api/wiki/{page['id']}/status", json={"status": "Published"}, headers=auth_headers
        )
        assert published.get_json()["status"] == "Published"

    def test_stale_direct_edit_returns_409(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        base = page["contentHash"]

        first = client.put(
            f"/api/wiki/{page['id']}/content",
            json={"content": "<p>v1</p>", "baseHash": base},
            headers=auth_headers,
        )
        assert first.status_code == 200
        assert first.get_json()["version"] == 2

        second = client.put(
            f"/api/wiki/{page['id']}/content",
            json={"content": "<p>v1 bis</p>", "baseHash": base},
            headers={"X-User-Id": "8"},
        )
        assert second.status_code == 409
        body = second.get_json()
        assert body["details"]["expectedHash"] == base
        assert body["details"]["currentHash"] == compute_content_hash("<p>v1</p>")

    def test_delete_page(self, client, auth_headers):
        page = _create_page(client, auth_headers)

        assert client.delete(f"/api/wiki/{page['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/wiki/{page['id']}", headers=auth_headers).status_code == 404


class TestChangeEndpoints:
    """変更提案・マージAPIのテスト"""

    def test_merge_then_conflict_then_resolve(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        first = _propose(client, auth_headers, page["id"], "<p>first</p>")
        second = _propose(client, auth_headers, page["id"], "<p>second</p>", item_id=43)
        assert first["status"] == "Pending"
        assert first["baseHash"] == page["contentHash"]

        merged = client.post(f"/api/wiki-changes/{first['id']}/merge", headers=auth_headers)
        assert merged.status_code == 200
        merged_body = merged.get_json()
        assert merged_body["outcome"] == "merged"
        assert merged_body["page"]["version"] == 2
        assert merged_body["change"]["status"] == "Merged"

        conflict = client.post(f"/api/wiki-changes/{second['id']}/merge", headers=auth_headers)
        assert conflict.status_code == 200
        conflict_body = conflict.get_json()
        assert conflict_body["outcome"] == "conflict"
        assert conflict_body["page"] is None
        assert conflict_body["currentHash"] == merged_body["page"]["contentHash"]

        preview = client.get(f"/api/wiki-changes/{second['id']}/preview", headers=auth_headers).get_json()
        assert preview["wouldConflict"] is True
        assert preview["currentContent"] == "<p>first</p>"

        resolved = client.post(
            f"/api/wiki-changes/{second['id']}/resolve",
            json={"content": "<p>first and second</p>"},
            headers=auth_headers,
        ).get_json()
        assert resolved["outcome"] == "merged"
        assert resolved["page"]["version"] == 3
        assert resolved["change"]["changeType"] == "merge"

    def test_merging_a_merged_change_returns_409(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        change = _propose(client, auth_headers, page["id"], "<p>v1</p>")
        client.post(f"/api/wiki-changes/{change['id']}/merge", headers=auth_headers)

        again = client.post(f"/api/wiki-changes/{change['id']}/merge", headers=auth_headers)

        assert again.status_code == 409
        assert again.get_json()["details"]["status"] == "Merged"

    def test_reject_with_and_without_body(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        first = _propose(client, auth_headers, page["id"], "<p>a</p>")
        second = _propose(client, auth_headers, page["id"], "<p>b</p>")

        plain = client.post(f"/api/wiki-changes/{first['id']}/reject", headers=auth_headers)
        with_reason = client.post(
            f"/api/wiki-changes/{second['id']}/reject", json={"reason": "duplicate"}, headers=auth_headers
        )

        assert plain.get_json()["status"] == "Rejected"
        assert with_reason.get_json()["status"] == "Rejected"
        untouched = client.get(f"/api/wiki/{page['id']}", headers=auth_headers).get_json()
        assert untouched["version"] == 1

    def test_reject_with_invalid_reason_returns_422(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        change = _propose(client, auth_headers, page["id"], "<p>a</p>")

        response = client.post(
            f"/api/wiki-changes/{change['id']}/reject", json={"reason": 5}, headers=auth_headers
        )

        assert response.status_code == 422
        fetched = client.get(f"/api/wiki-changes/{change['id']}", headers=auth_headers).get_json()
        assert fetched["status"] == "Pending"

    def test_merge_by_item_reports_counts(self, client, auth_headers):
        fresh = _create_page(client, auth_headers, title="Fresh")
        stale = _create_page(client, auth_headers, title="Stale")
        _propose(client, auth_headers, fresh["id"], "<p>fresh</p>")
        _propose(client, auth_headers, stale["id"], "<p>stale</p>")
        client.put(f"/api/wiki/{stale['id']}/content", json={"content": "<p>direct</p>"}, headers=auth_headers)

        response = client.post(
            "/api/wiki-changes/merge", json={"itemType": "issue", "itemId": 42}, headers=auth_headers
        )

        body = response.get_json()
        assert response.status_code == 200
        assert body["merged"] == 1
        assert body["conflicted"] == 1
        assert [r["outcome"] for r in body["results"]] == ["merged", "conflict"]

        empty = client.post(
            "/api/wiki-changes/merge", json={"itemType": "issue", "itemId": 42}, headers=auth_headers
        ).get_json()
        assert empty == {"results": [], "merged": 0, "conflicted": 0}

    def test_change_queries(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        change = _propose(client, auth_headers, page["id"], "<p>a</p>", item_type="feature", item_id=5)

        pending = client.get(f"/api/wiki/{page['id']}/changes/pending", headers=auth_headers).get_json()
        assert [c["id"] for c in pending] == [change["id"]]

        history = client.get(f"/api/wiki/{page['id']}/changes?status=Pending", headers=auth_headers).get_json()
        assert history["total"] == 1
        assert [c["id"] for c in history["changes"]] == [change["id"]]

        by_item = client.get("/api/wiki-changes?itemType=feature&itemId=5", headers=auth_headers).get_json()
        assert [c["id"] for c in by_item] == [change["id"]]

    def test_only_author_can_edit_proposal(self, client, auth_headers):
        page = _create_page(client, auth_headers)
        change = _propose(client, auth_headers, page["id"], "<p>a</p>")

        denied = client.put(
            f"/api/wiki-changes/{change['id']}", json={"content": "<p>b</p>"}, headers={"X-User-Id": "8"}
        )
        allowed = client.put(f"/api/wiki-changes/{change['id']}", json={"content": "<p>b</p>"}, headers=auth_headers)

        assert denied.status_code == 403
        assert allowed.get_json()["snapshot"] == "<p>b</p>"
        assert client.delete(f"/api/wiki-changes/{change['id']}", headers=auth_headers).status_code == 204

    def test_invalid_item_type_returns_422(self, client, auth_headers):
        page = _create_page(client, auth_headers)

        response = client.post(
            f"/api/wiki/{page['id']}/changes",
            json={"itemType": "epic", "itemId": 1, "content": "<p>x</p>"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_proposal_for_unknown_page_returns_404(self, client, auth_headers):
        response = client.post(
            "/api/wiki/9999/changes",
            json={"itemType": "issue", "itemId": 1, "content": "<p>x</p>"},
            headers=auth_headers,
        )

        assert response.status_code == 404
