"""Tests for the key-protected /api/v1 endpoints."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from app.core.permissions import PermissionSet
from app.models.user import User
from app.schemas.api_key import UsageLogEntryCreate
from app.services.api_keys import ApiKeyService


@pytest.fixture()
def owner(make_user: Callable[..., User]) -> User:
    return make_user(username="author")


@pytest.fixture()
def writer_headers(api_key_service: ApiKeyService, owner: User) -> dict[str, str]:
    created = api_key_service.create_key(
        owner.id, "Writer", permissions=PermissionSet(read_posts=True, write_posts=True)
    )
    return {"x-api-key": created.plaintext_secret}


def _post_payload(**overrides) -> dict:
    payload = {
        "title": "Hello, World!",
        "excerpt": "A first post",
        "content": "Body text",
        "category": "news",
    }
    payload.update(overrides)
    return payload


def test_create_post_is_authored_by_key_owner(
    client: TestClient, writer_headers: dict[str, str], owner: User
) -> None:
    response = client.post("/api/v1/posts", json=_post_payload(), headers=writer_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["slug"] == "hello-world"
    assert body["author_id"] == owner.id
    assert body["featured"] is False


def test_duplicate_titles_get_distinct_slugs(client: TestClient, writer_headers: dict[str, str]) -> None:
    first = client.post("/api/v1/posts", json=_post_payload(), headers=writer_headers).json()
    second = client.post("/api/v1/posts", json=_post_payload(), headers=writer_headers).json()

    assert first["slug"] == "hello-world"
    assert second["slug"] == "hello-world-2"


def test_create_post_requires_fields(client: TestClient, writer_headers: dict[str, str]) -> None:
    response = client.post("/api/v1/posts", json={"title": "Only a title"}, headers=writer_headers)

    assert response.status_code == 422


def test_list_posts_filters_and_paginates(client: TestClient, writer_headers: dict[str, str]) -> None:
    client.post("/api/v1/posts", json=_post_payload(title="Alpha"), headers=writer_headers)
    client.post(
        "/api/v1/posts",
        json=_post_payload(title="Beta", category="guides", featured=True),
        headers=writer_headers,
    )
    client.post(
        "/api/v1/posts",
        json=_post_payload(title="Gamma", content="Mentions FastAPI"),
        headers=writer_headers,
    )

    everything = client.get("/api/v1/posts?limit=2", headers=writer_headers).json()
    guides = client.get("/api/v1/posts?category=guides", headers=writer_headers).json()
    featured = client.get("/api/v1/posts?featured=true", headers=writer_headers).json()
    searched = client.get("/api/v1/posts?search=fastapi", headers=writer_headers).json()

    assert len(everything["posts"]) == 2
    assert everything["pagination"] == {"limit": 2, "offset": 0, "total": 3, "has_more": True}
    assert [post["title"] for post in guides["posts"]] == ["Beta"]
    assert [post["title"] for post in featured["posts"]] == ["Beta"]
    assert [post["title"] for post in searched["posts"]] == ["Gamma"]


def test_read_update_and_delete_post(client: TestClient, writer_headers: dict[str, str]) -> None:
    client.post("/api/v1/posts", json=_post_payload(), headers=writer_headers)

    fetched = client.get("/api/v1/posts/hello-world", headers=writer_headers)
    updated = client.put(
        "/api/v1/posts/hello-world",
        json={"title": "Hello again", "featured": True},
        headers=writer_headers,
    )
    deleted = client.delete("/api/v1/posts/hello-world", headers=writer_headers)
    missing = client.get("/api/v1/posts/hello-world", headers=writer_headers)

    assert fetched.status_code == 200
    assert updated.status_code == 200
    assert updated.json()["title"] == "Hello again"
    assert updated.json()["slug"] == "hello-world"
    assert updated.json()["featured"] is True
    assert updated.json()["excerpt"] == "A first post"
    assert deleted.json() == {"status": "deleted", "slug": "hello-world"}
    assert missing.status_code == 404


def test_users_endpoints_expose_public_profile_only(
    client: TestClient, api_key_service: ApiKeyService, owner: User
) -> None:
    created = api_key_service.create_key(owner.id, "Users", permissions=PermissionSet(read_users=True))
    headers = {"x-api-key": created.plaintext_secret}

    listing = client.get("/api/v1/users", headers=headers)
    single = client.get(f"/api/v1/users/{owner.id}", headers=headers)
    missing = client.get("/api/v1/users/999", headers=headers)

    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert single.json()["username"] == "author"
    assert "hashed_password" not in single.json()
    assert "email" not in single.json()
    assert missing.status_code == 404


def test_admin_usage_reports_global_stats(
    client: TestClient, api_key_service: ApiKeyService, owner: User
) -> None:
    created = api_key_service.create_key(owner.id, "Admin", permissions=PermissionSet(admin=True))
    api_key_service.log_usage(
        UsageLogEntryCreate(
            api_key_id=None, endpoint="/api/v1/posts", method="GET", status_code=401
        )
    )

    response = client.get("/api/v1/admin/usage", headers={"x-api-key": created.plaintext_secret})

    assert response.status_code == 200
    body = response.json()
    assert body["total_requests"] == 1
    assert body["success_rate"] == 0.0
