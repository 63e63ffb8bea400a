"""Tests for the API key gate in front of the /api/v1 routes."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.permissions import PermissionSet
from app.main import create_app
from app.middleware import api_key_auth
from app.models.user import User
from app.schemas.api_key import UsageFilter, UsageLogEntryCreate
from app.services.api_keys import ApiKeyService, InMemoryApiKeyService


def _issue_key(service: ApiKeyService, owner: User, **kwargs) -> str:
    return service.create_key(owner.id, "Gate test", **kwargs).plaintext_secret


def test_missing_key_is_rejected_and_logged(client: TestClient, api_key_service: ApiKeyService) -> None:
    response = client.get("/api/v1/posts")

    assert response.status_code == 401
    assert response.json() == {
        "error": "Missing API key. Provide your API key in the x-api-key header."
    }
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.status_code == 401
    assert log.api_key_id is None
    assert log.endpoint == "/api/v1/posts"
    assert log.method == "GET"


def test_unknown_key_is_rejected_and_logged(client: TestClient, api_key_service: ApiKeyService) -> None:
    response = client.get("/api/v1/posts", headers={"x-api-key": "f" * 64})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired API key"}
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.status_code == 401
    assert log.api_key_id is None


def test_expired_key_is_rejected(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    secret = _issue_key(
        api_key_service,
        make_user(),
        expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
    )

    response = client.get("/api/v1/posts", headers={"x-api-key": secret})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired API key"}


def test_valid_key_reaches_handler_and_is_logged_once(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    owner = make_user()
    created = api_key_service.create_key(owner.id, "Reader")

    response = client.get(
        "/api/v1/posts",
        headers={
            "x-api-key": created.plaintext_secret,
            "x-forwarded-for": "198.51.100.4, 10.0.0.1",
            "user-agent": "gate-test/1.0",
        },
    )

    assert response.status_code == 200
    logs = api_key_service.get_logs(UsageFilter(api_key_id=created.key.id))
    assert len(logs) == 1
    (log,) = logs
    assert log.status_code == 200
    assert log.request_ip == "198.51.100.4"
    assert log.user_agent == "gate-test/1.0"
    assert log.response_time_ms >= 0
    stored = api_key_service.get_key(created.key.id)
    assert stored is not None and stored.last_used_at is not None


def test_real_ip_header_takes_precedence(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    secret = _issue_key(api_key_service, make_user())

    client.get(
        "/api/v1/posts",
        headers={"x-api-key": secret, "x-real-ip": "192.0.2.9", "x-forwarded-for": "198.51.100.4"},
    )

    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.request_ip == "192.0.2.9"


def test_missing_permission_is_forbidden_and_logged(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    created = api_key_service.create_key(make_user().id, "Reader")

    response = client.post(
        "/api/v1/posts",
        headers={"x-api-key": created.plaintext_secret},
        json={"title": "Nope", "excerpt": "e", "content": "c", "category": "news"},
    )

    assert response.status_code == 403
    assert response.json() == {"error": "API key lacks required permission: write_posts"}
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.status_code == 403
    assert log.api_key_id == created.key.id
    assert log.method == "POST"


@pytest.mark.parametrize(
    ("path", "permission"),
    [("/api/v1/users", "read_users"), ("/api/v1/admin/usage", "admin")],
)
def test_default_key_cannot_reach_other_namespaces(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
    path: str,
    permission: str,
) -> None:
    secret = _issue_key(api_key_service, make_user())

    response = client.get(path, headers={"x-api-key": secret})

    assert response.status_code == 403
    assert response.json()["error"].endswith(permission)


def test_handler_status_is_logged(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    secret = _issue_key(api_key_service, make_user())

    response = client.get("/api/v1/posts/does-not-exist", headers={"x-api-key": secret})

    assert response.status_code == 404
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.status_code == 404


def test_unlisted_namespace_only_needs_a_valid_key(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    secret = _issue_key(api_key_service, make_user())

    response = client.get("/api/v1/status", headers={"x-api-key": secret})

    # Passes the gate; no route is mounted there
    assert response.status_code == 404
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.api_key_id is not None


def test_handler_exception_becomes_logged_500(
    app: FastAPI,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
) -> None:
    @app.get("/api/v1/explode")
    def explode() -> None:
        raise RuntimeError("boom")

    secret = _issue_key(api_key_service, make_user())

    with TestClient(app) as client:
        response = client.get("/api/v1/explode", headers={"x-api-key": secret})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    (log,) = api_key_service.get_logs(UsageFilter())
    assert log.status_code == 500


def test_routes_outside_prefix_are_not_gated_or_logged(
    client: TestClient, api_key_service: ApiKeyService
) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert api_key_service.get_logs(UsageFilter()) == []


def test_custom_header_name_is_honoured(settings: Settings, session_factory) -> None:
    service = InMemoryApiKeyService()
    custom = settings.model_copy(update={"api_key_header": "X-Blog-Key"})
    app = create_app(custom, session_factory=session_factory, api_key_service=service)
    secret = service.create_key(1, "Reader").plaintext_secret

    with TestClient(app) as client:
        assert client.get("/api/v1/posts", headers={"x-blog-key": secret}).status_code == 200
        missing = client.get("/api/v1/posts", headers={"x-api-key": secret})

    assert missing.status_code == 401
    assert "x-blog-key" in missing.json()["error"]


class _UnloggableService(InMemoryApiKeyService):
    def log_usage(self, entry: UsageLogEntryCreate) -> None:
        raise RuntimeError("log store unavailable")


def test_usage_log_failure_does_not_change_response(
    settings: Settings, session_factory, caplog: pytest.LogCaptureFixture
) -> None:
    service = _UnloggableService()
    app = create_app(settings, session_factory=session_factory, api_key_service=service)
    secret = service.create_key(1, "Reader", permissions=PermissionSet(read_users=True)).plaintext_secret

    with TestClient(app) as client, caplog.at_level("ERROR"):
        response = client.get("/api/v1/users", headers={"x-api-key": secret})

    assert response.status_code == 200
    assert "Failed to record API usage" in caplog.text


def test_unbuildable_usage_entry_does_not_change_response(
    client: TestClient,
    api_key_service: ApiKeyService,
    make_user: Callable[..., User],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    secret = _issue_key(api_key_service, make_user())

    def _reject_entry(**kwargs):
        UsageLogEntryCreate(**{**kwargs, "response_time_ms": -1})

    monkeypatch.setattr(api_key_auth, "UsageLogEntryCreate", _reject_entry)

    with caplog.at_level("ERROR"):
        response = client.get("/api/v1/posts", headers={"x-api-key": secret})

    assert response.status_code == 200
    assert "Failed to record API usage for GET /api/v1/posts" in caplog.text
    assert api_key_service.get_logs(UsageFilter()) == []
