"""Integration tests for post, moderation and assist routes."""

from uuid import uuid4

import pytest

from patchouli.domain.entities import User

NEW_POST = {
    "title": "Auto Backup Script",
    "body": "Copies the world folder every hour.",
    "category": "script",
    "tags": ["scripting", "automation"],
    "attachments": [{"name": "docs", "kind": "link", "url": "https://example.com/docs"}],
}


@pytest.fixture
def submitted(client, author_headers, assistant):
    assistant.clues = "backup, world save"
    resp = client.post("/api/posts", json=NEW_POST, headers=author_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["post"]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_submit_creates_pending_post(client, author, submitted):
    assert submitted["status"] == "pending"
    assert submitted["author_id"] == str(author.id)
    assert submitted["author_name"] == "Alex"
    assert submitted["tags"] == ["automation", "scripting"]
    assert submitted["search_clues"] == "backup, world save"
    assert submitted["attachments"][0]["name"] == "docs"


def test_submit_without_clues_reports_notice(client, author_headers):
    resp = client.post("/api/posts", json=NEW_POST, headers=author_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["post"]["search_clues"] is None
    assert body["notices"][0]["kind"] == "external_unavailable"


def test_anonymous_submit_is_401(client):
    resp = client.post("/api/posts", json=NEW_POST)

    assert resp.status_code == 401
    assert resp.json()["detail"]["kind"] == "unauthenticated"


def test_bad_token_is_401(client):
    resp = client.post("/api/posts", json=NEW_POST, headers={"Authorization": "Bearer junk"})

    assert resp.status_code == 401


def test_cookie_token_is_accepted(client, author_headers):
    client.cookies.set("access_token", author_headers["Authorization"])

    resp = client.get("/api/posts", params={"scope": "mine"})

    assert resp.status_code == 200


def test_validation_error_is_422(client, author_headers):
    resp = client.post(
        "/api/posts", json={**NEW_POST, "tags": ["not-a-tag"]}, headers=author_headers
    )

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "tag_not_allowed"


def test_pending_post_visibility(client, submitted, author_headers, admin_headers):
    path = f"/api/posts/{submitted['id']}"

    assert client.get(path).status_code == 404
    assert client.get(path, headers=author_headers).status_code == 200
    assert client.get(path, headers=admin_headers).status_code == 200


def test_approve_publishes(client, submitted, admin_headers):
    resp = client.post(f"/api/admin/posts/{submitted['id']}/approve", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "published"
    public = client.get("/api/posts").json()
    assert [p["id"] for p in public] == [submitted["id"]]
    assert client.get(f"/api/posts/{submitted['id']}").status_code == 200


def test_second_decision_is_409(client, submitted, admin_headers):
    client.post(f"/api/admin/posts/{submitted['id']}/reject", headers=admin_headers)

    resp = client.post(f"/api/admin/posts/{submitted['id']}/approve", headers=admin_headers)

    assert resp.status_code == 409
    assert resp.json()["detail"]["kind"] == "invalid_transition"


def test_author_cannot_approve(client, submitted, author_headers):
    resp = client.post(f"/api/admin/posts/{submitted['id']}/approve", headers=author_headers)

    assert resp.status_code == 403


def test_review_queue(client, submitted, admin_headers, author_headers):
    queue = client.get("/api/admin/queue", headers=admin_headers)

    assert queue.status_code == 200
    assert [p["id"] for p in queue.json()] == [submitted["id"]]
    assert client.get("/api/admin/queue", headers=author_headers).status_code == 403


def test_author_edits_until_published(client, submitted, author_headers, admin_headers):
    path = f"/api/posts/{submitted['id']}"

    edited = client.patch(path, json={"title": "Hourly Backup"}, headers=author_headers)
    assert edited.status_code == 200
    assert edited.json()["post"]["title"] == "Hourly Backup"
    assert edited.json()["post"]["status"] == "pending"

    client.post(f"/api/admin/posts/{submitted['id']}/approve", headers=admin_headers)

    locked = client.patch(path, json={"title": "Sneaky"}, headers=author_headers)
    assert locked.status_code == 403

    by_admin = client.patch(path, json={"title": "Fixed Typo"}, headers=admin_headers)
    assert by_admin.status_code == 200
    assert by_admin.json()["post"]["status"] == "published"


def test_edit_regenerates_clues(client, submitted, author_headers, assistant):
    assistant.clues = "tick scheduler"

    resp = client.patch(
        f"/api/posts/{submitted['id']}",
        json={"body": "Runs every tick.", "regenerate_clues": True},
        headers=author_headers,
    )

    assert resp.json()["post"]["search_clues"] == "tick scheduler"


def test_delete(client, submitted, author_headers):
    path = f"/api/posts/{submitted['id']}"

    assert client.delete(path, headers=author_headers).status_code == 204
    assert client.get(path, headers=author_headers).status_code == 404
    assert client.delete(path, headers=author_headers).status_code == 409


def test_ban_blocks_writes(client, author, submitted, author_headers, admin_headers):
    resp = client.post(
        f"/api/admin/users/{author.id}/ban", json={"banned": True}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["is_banned"] is True

    submit = client.post("/api/posts", json=NEW_POST, headers=author_headers)
    assert submit.status_code == 403
    assert submit.json()["detail"]["kind"] == "banned"

    # Reads keep working
    assert client.get("/api/posts", params={"scope": "mine"}, headers=author_headers).status_code == 200


def test_admin_lists_users(client, author, admin, admin_headers, author_headers):
    resp = client.get("/api/admin/users", headers=admin_headers)

    assert resp.status_code == 200
    assert {u["name"] for u in resp.json()} == {"Alex", "Moderator"}
    assert client.get("/api/admin/users", headers=author_headers).status_code == 403
    assert client.get("/api/admin/users").status_code == 401


def test_feed_limit_is_capped_and_validated(client, author_headers):
    for n in range(25):
        client.post(
            "/api/posts",
            json={**NEW_POST, "title": f"Post {n}", "generate_clues": False},
            headers=author_headers,
        )

    capped = client.get("/api/posts", params={"scope": "mine", "limit": 1000}, headers=author_headers)
    negative = client.get("/api/posts", params={"limit": -1})
    bad_offset = client.get("/api/posts", params={"offset": -1})

    assert len(capped.json()) == 20
    assert negative.status_code == 422
    assert negative.json()["detail"]["code"] == "limit_invalid"
    assert bad_offset.status_code == 422


def test_ban_without_body_toggles(client, author, admin_headers):
    path = f"/api/admin/users/{author.id}/ban"

    assert client.post(path, headers=admin_headers).json()["is_banned"] is True
    assert client.post(path, headers=admin_headers).json()["is_banned"] is False


def test_unknown_profile_is_401(client, headers_for):
    ghost = User(id=uuid4(), name="Ghost")

    resp = client.get("/api/posts", params={"scope": "mine"}, headers=headers_for(ghost))

    assert resp.status_code == 401


def test_clue_preview(client, author_headers, assistant):
    assistant.clues = "**backup**\nworld"

    resp = client.post("/api/assist/clues", json={"body": "Body"}, headers=author_headers)

    assert resp.status_code == 200
    assert resp.json() == {"clues": "backup world"}


def test_clue_preview_unavailable_is_503(client, author_headers):
    resp = client.post("/api/assist/clues", json={"body": "Body"}, headers=author_headers)

    assert resp.status_code == 503
