"""Tests for the API key and usage log repositories."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.models.api_key import ApiKey
from app.models.api_usage_log import ApiUsageLog
from app.models.user import User
from app.repositories.api_key import ApiKeyRepository
from app.repositories.api_usage_log import ApiUsageLogRepository

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock database session."""
    return MagicMock()


@pytest.fixture
def repository() -> ApiKeyRepository:
    return ApiKeyRepository()


def _key_data(**overrides) -> dict:
    data = {
        "owner_id": 1,
        "name": "Integration",
        "prefix": "abcdef12",
        "key_hash": "0" * 64,
        "permissions": {"read_posts": True},
        "enabled": True,
    }
    data.update(overrides)
    return data


def test_repository_model_types() -> None:
    """Test that repositories are bound to their models."""
    assert ApiKeyRepository().model is ApiKey
    assert ApiUsageLogRepository().model is ApiUsageLog


def test_create_adds_and_flushes_without_commit(
    repository: ApiKeyRepository,
    mock_session: MagicMock,
) -> None:
    """Test create() flushes the new key and leaves the commit to the caller."""
    api_key = repository.create(mock_session, _key_data())

    assert isinstance(api_key, ApiKey)
    assert api_key.prefix == "abcdef12"
    mock_session.add.assert_called_once_with(api_key)
    mock_session.flush.assert_called_once()
    mock_session.commit.assert_not_called()


def test_get_enabled_by_prefix_and_hash_not_found(
    repository: ApiKeyRepository,
    mock_session: MagicMock,
) -> None:
    """Test the lookup returns None when nothing matches."""
    mock_result = MagicMock()
    mock_result.scalars.return_value.first.return_value = None
    mock_session.execute.return_value = mock_result

    assert repository.get_enabled_by_prefix_and_hash(mock_session, "abcdef12", "0" * 64) is None


def test_update_sets_fields_and_timestamp(
    repository: ApiKeyRepository,
    mock_session: MagicMock,
) -> None:
    """Test update() applies changes and bumps updated_at."""
    api_key = ApiKey(**_key_data(), updated_at=BASE_TIME)

    repository.update(mock_session, api_key, {"name": "Renamed", "enabled": False})

    assert api_key.name == "Renamed"
    assert api_key.enabled is False
    assert api_key.updated_at > BASE_TIME
    mock_session.flush.assert_called_once()
    mock_session.refresh.assert_called_once_with(api_key)


def test_touch_last_used_issues_single_update(
    repository: ApiKeyRepository,
    mock_session: MagicMock,
) -> None:
    """Test touch_last_used() runs one UPDATE statement and never loads the row."""
    repository.touch_last_used(mock_session, 7, BASE_TIME)

    mock_session.execute.assert_called_once()
    statement = mock_session.execute.call_args.args[0]
    assert statement.table.name == "api_keys"
    mock_session.get.assert_not_called()


def test_lookup_ignores_disabled_keys(
    session_factory: sessionmaker[Session], make_user: Callable[..., User]
) -> None:
    make_user()
    repository = ApiKeyRepository()
    with session_factory() as session:
        repository.create(session, _key_data(enabled=False))
        session.commit()

        assert repository.get_enabled_by_prefix_and_hash(session, "abcdef12", "0" * 64) is None


def test_lookup_requires_matching_prefix_and_hash(
    session_factory: sessionmaker[Session], make_user: Callable[..., User]
) -> None:
    make_user()
    repository = ApiKeyRepository()
    with session_factory() as session:
        created = repository.create(session, _key_data())
        session.commit()

        found = repository.get_enabled_by_prefix_and_hash(session, "abcdef12", "0" * 64)
        assert found is not None and found.id == created.id
        assert repository.get_enabled_by_prefix_and_hash(session, "abcdef12", "1" * 64) is None
        assert repository.get_enabled_by_prefix_and_hash(session, "ffffffff", "0" * 64) is None


def test_usage_summary_and_endpoint_counts(
    session_factory: sessionmaker[Session], make_user: Callable[..., User]
) -> None:
    make_user()
    keys = ApiKeyRepository()
    logs = ApiUsageLogRepository()
    with session_factory() as session:
        api_key = keys.create(session, _key_data())
        for index, status_code in enumerate([200, 201, 404, 500]):
            logs.create(
                session,
                {
                    "api_key_id": api_key.id,
                    "endpoint": "/api/v1/posts" if index < 3 else "/api/v1/users",
                    "method": "GET",
                    "status_code": status_code,
                    "response_time_ms": 20 * (index + 1),
                    "created_at": BASE_TIME + timedelta(minutes=index),
                },
            )
        session.commit()

        total, successful, average = logs.summarize(session, api_key_id=api_key.id)
        by_endpoint = logs.count_by_endpoint(session, api_key_id=api_key.id)
        rows = logs.list_with_keys(session, api_key_id=api_key.id, limit=2)

    assert (total, successful, average) == (4, 2, 50.0)
    assert by_endpoint == {"/api/v1/posts": 3, "/api/v1/users": 1}
    assert [row[0].status_code for row in rows] == [500, 404]
    assert (rows[0][1], rows[0][2]) == ("Integration", "abcdef12")


def test_usage_summary_of_empty_log(session_factory: sessionmaker[Session]) -> None:
    with session_factory() as session:
        assert ApiUsageLogRepository().summarize(session) == (0, 0, 0.0)
        assert ApiUsageLogRepository().count_by_endpoint(session) == {}


def test_deleting_key_detaches_its_logs(
    session_factory: sessionmaker[Session], make_user: Callable[..., User]
) -> None:
    make_user()
    keys = ApiKeyRepository()
    logs = ApiUsageLogRepository()
    with session_factory() as session:
        old_key = keys.create(session, _key_data())
        logs.create(
            session,
            {"api_key_id": old_key.id, "endpoint": "/api/v1/posts", "method": "GET", "status_code": 200},
        )
        session.commit()
        old_id = old_key.id

        keys.delete(session, old_key)
        session.commit()
        new_key = keys.create(session, _key_data(key_hash="1" * 64))
        session.commit()

        assert session.execute(select(ApiUsageLog.api_key_id)).scalar_one() is None
        assert new_key.id != old_id
        assert logs.summarize(session, api_key_id=new_key.id) == (0, 0, 0.0)
