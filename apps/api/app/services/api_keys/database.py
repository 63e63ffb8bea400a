"""SQLAlchemy-backed API key service."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from app.core.permissions import PermissionSet
from app.repositories.api_key import ApiKeyRepository
from app.repositories.api_usage_log import ApiUsageLogRepository
from app.schemas.api_key import (
    ApiKeyRead,
    ApiKeyUpdate,
    ApiUsageLogRead,
    UsageFilter,
    UsageLogEntryCreate,
    UsageStats,
)
from app.services.api_keys.base import ApiKeyService, build_usage_stats


class DatabaseApiKeyService(ApiKeyService):
    """Stores keys and usage logs in the relational database.

    Every operation runs in its own short-lived session from the injected
    factory and commits before returning.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        key_repository: ApiKeyRepository | None = None,
        log_repository: ApiUsageLogRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._keys = key_repository or ApiKeyRepository()
        self._logs = log_repository or ApiUsageLogRepository()

    def _insert_key(
        self,
        *,
        owner_id: int,
        name: str,
        prefix: str,
        key_hash: str,
        permissions: PermissionSet,
        expires_at: datetime | None,
    ) -> ApiKeyRead:
        with self._session_factory() as session:
            api_key = self._keys.create(
                session,
                {
                    "owner_id": owner_id,
                    "name": name,
                    "prefix": prefix,
                    "key_hash": key_hash,
                    "permissions": permissions.model_dump(),
                    "expires_at": expires_at,
                    "enabled": True,
                },
            )
            session.commit()
            return ApiKeyRead.model_validate(api_key)

    def _find_enabled_key(self, prefix: str, key_hash: str) -> ApiKeyRead | None:
        with self._session_factory() as session:
            api_key = self._keys.get_enabled_by_prefix_and_hash(session, prefix, key_hash)
            return ApiKeyRead.model_validate(api_key) if api_key is not None else None

    def _touch_last_used(self, key_id: int, used_at: datetime) -> None:
        with self._session_factory() as session:
            self._keys.touch_last_used(session, key_id, used_at)
            session.commit()

    def get_key(self, key_id: int) -> ApiKeyRead | None:
        with self._session_factory() as session:
            api_key = self._keys.get(session, key_id)
            return ApiKeyRead.model_validate(api_key) if api_key is not None else None

    def update_key(self, key_id: int, changes: ApiKeyUpdate) -> ApiKeyRead | None:
        with self._session_factory() as session:
            api_key = self._keys.get(session, key_id)
            if api_key is None:
                return None
            api_key = self._keys.update(session, api_key, changes.changes())
            session.commit()
            return ApiKeyRead.model_validate(api_key)

    def delete_key(self, key_id: int) -> bool:
        with self._session_factory() as session:
            api_key = self._keys.get(session, key_id)
            if api_key is None:
                return False
            self._keys.delete(session, api_key)
            session.commit()
            return True

    def list_keys(self, owner_id: int) -> list[ApiKeyRead]:
        with self._session_factory() as session:
            return [ApiKeyRead.model_validate(key) for key in self._keys.list_by_owner(session, owner_id)]

    def log_usage(self, entry: UsageLogEntryCreate) -> None:
        data = entry.model_dump()
        if data["created_at"] is None:
            del data["created_at"]
        with self._session_factory() as session:
            self._logs.create(session, data)
            session.commit()

    def get_logs(
        self, usage_filter: UsageFilter, limit: int = 100, offset: int = 0
    ) -> list[ApiUsageLogRead]:
        with self._session_factory() as session:
            rows = self._logs.list_with_keys(
                session,
                **usage_filter.model_dump(),
                limit=limit,
                offset=offset,
            )
            return [
                ApiUsageLogRead.model_validate(log).model_copy(
                    update={"api_key_name": key_name, "api_key_prefix": key_prefix}
                )
                for log, key_name, key_prefix in rows
            ]

    def get_stats(self, usage_filter: UsageFilter) -> UsageStats:
        criteria = usage_filter.model_dump()
        with self._session_factory() as session:
            total, successful, average = self._logs.summarize(session, **criteria)
            by_endpoint = self._logs.count_by_endpoint(session, **criteria)
        return build_usage_stats(total, successful, average, by_endpoint)
