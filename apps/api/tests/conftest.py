"""Shared fixtures: an in-memory SQLite database and an app built around it."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.core.security import create_access_token, create_password_hash
from app.db import create_session_factory
from app.db.base import Base
from app.main import create_app
from app.models.user import ROLE_USER, User
from app.services.api_keys import DatabaseApiKeyService


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url_override="sqlite+pysqlite:///:memory:",
        jwt_secret_key="test-secret",
        cors_allowed_origins="http://localhost:3000,http://localhost:5173",
    )


@pytest.fixture()
def session_factory(settings: Settings) -> sessionmaker[Session]:
    factory = create_session_factory(settings)
    Base.metadata.create_all(bind=factory.kw["bind"])
    return factory


@pytest.fixture()
def api_key_service(session_factory: sessionmaker[Session]) -> DatabaseApiKeyService:
    return DatabaseApiKeyService(session_factory)


@pytest.fixture()
def app(
    settings: Settings,
    session_factory: sessionmaker[Session],
    api_key_service: DatabaseApiKeyService,
) -> FastAPI:
    return create_app(settings, session_factory=session_factory, api_key_service=api_key_service)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(session_factory: sessionmaker[Session]) -> Callable[..., User]:
    """Insert a dashboard user and return it detached from its session."""

    counter = iter(range(1, 1000))

    def _make_user(
        *,
        username: str | None = None,
        email: str | None = None,
        password: str = "super-secret",
        role: str = ROLE_USER,
        can_create_api_keys: bool = False,
        can_manage_api_keys: bool = False,
    ) -> User:
        number = next(counter)
        username = username or f"user{number}"
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=create_password_hash(password),
            role=role,
            can_create_api_keys=can_create_api_keys,
            can_manage_api_keys=can_manage_api_keys,
        )
        with session_factory() as session:
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
        return user

    return _make_user


@pytest.fixture()
def auth_headers(settings: Settings) -> Callable[[User], dict[str, str]]:
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(subject=str(user.id), settings=settings)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
