"""In-memory API key service for local development and tests."""

from __future__ import annotations

import itertools
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from app.core.permissions import PermissionSet
from app.schemas.api_key import (
    ApiKeyRead,
    ApiKeyUpdate,
    ApiUsageLogRead,
    UsageFilter,
    UsageLogEntryCreate,
    UsageStats,
)
from app.services.api_keys.base import ApiKeyService, as_utc, build_usage_stats


@dataclass
class _StoredKey:
    id: int
    owner_id: int
    name: str
    prefix: str
    key_hash: str
    permissions: PermissionSet
    enabled: bool
    expires_at: datetime | None
    last_used_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def to_read(self) -> ApiKeyRead:
        data = asdict(self)
        del data["key_hash"]
        data["permissions"] = self.permissions
        return ApiKeyRead(**data)


class InMemoryApiKeyService(ApiKeyService):
    """Keeps keys and usage logs in process memory; nothing survives a restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: dict[int, _StoredKey] = {}
        self._logs: list[ApiUsageLogRead] = []
        self._key_ids = itertools.count(1)
        self._log_ids = itertools.count(1)

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
        now = datetime.now(timezone.utc)
        with self._lock:
            stored = _StoredKey(
                id=next(self._key_ids),
                owner_id=owner_id,
                name=name,
                prefix=prefix,
                key_hash=key_hash,
                permissions=permissions,
                enabled=True,
                expires_at=expires_at,
                last_used_at=None,
                created_at=now,
                updated_at=now,
            )
            self._keys[stored.id] = stored
            return stored.to_read()

    def _find_enabled_key(self, prefix: str, key_hash: str) -> ApiKeyRead | None:
        with self._lock:
            for stored in self._keys.values():
                if stored.prefix == prefix and stored.key_hash == key_hash and stored.enabled:
                    return stored.to_read()
        return None

    def _touch_last_used(self, key_id: int, used_at: datetime) -> None:
        with self._lock:
            stored = self._keys.get(key_id)
            if stored is not None:
                stored.last_used_at = used_at

    def get_key(self, key_id: int) -> ApiKeyRead | None:
        with self._lock:
            stored = self._keys.get(key_id)
            return stored.to_read() if stored is not None else None

    def update_key(self, key_id: int, changes: ApiKeyUpdate) -> ApiKeyRead | None:
        with self._lock:
            stored = self._keys.get(key_id)
            if stored is None:
                return None
            for field, value in changes.changes().items():
                if field == "permissions":
                    value = PermissionSet.model_validate(value)
                setattr(stored, field, value)
            stored.updated_at = datetime.now(timezone.utc)
            return stored.to_read()

    def delete_key(self, key_id: int) -> bool:
        with self._lock:
            return self._keys.pop(key_id, None) is not None

    def list_keys(self, owner_id: int) -> list[ApiKeyRead]:
        with self._lock:
            owned = [stored for stored in self._keys.values() if stored.owner_id == owner_id]
            owned.sort(key=lambda stored: (stored.created_at, stored.id), reverse=True)
            return [stored.to_read() for stored in owned]

    def log_usage(self, entry: UsageLogEntryCreate) -> None:
        data = entry.model_dump()
        data["created_at"] = data["created_at"] or datetime.now(timezone.utc)
        with self._lock:
            self._logs.append(ApiUsageLogRead(id=next(self._log_ids), **data))

    def _matching(self, usage_filter: UsageFilter) -> list[ApiUsageLogRead]:
        start = as_utc(usage_filter.start_date) if usage_filter.start_date else None
        end = as_utc(usage_filter.end_date) if usage_filter.end_date else None
        with self._lock:
            logs = list(self._logs)
        matching = []
        for log in logs:
            if usage_filter.api_key_id is not None and log.api_key_id != usage_filter.api_key_id:
                continue
            created_at = as_utc(log.created_at)
            if start is not None and created_at < start:
                continue
            if end is not None and created_at > end:
                continue
            matching.append(log)
        return matching

    def get_logs(
        self, usage_filter: UsageFilter, limit: int = 100, offset: int = 0
    ) -> list[ApiUsageLogRead]:
        matching = self._matching(usage_filter)
        matching.sort(key=lambda log: (as_utc(log.created_at), log.id), reverse=True)
        page = matching[offset : offset + limit]
        with self._lock:
            keys = dict(self._keys)
        result = []
        for log in page:
            stored = keys.get(log.api_key_id) if log.api_key_id is not None else None
            result.append(
                log.model_copy(
                    update={
                        "api_key_name": stored.name if stored else None,
                        "api_key_prefix": stored.prefix if stored else None,
                    }
                )
            )
        return result

    def get_stats(self, usage_filter: UsageFilter) -> UsageStats:
        matching = self._matching(usage_filter)
        total = len(matching)
        successful = sum(1 for log in matching if log.status_code < 400)
        average = sum(log.response_time_ms for log in matching) / total if total else 0.0
        by_endpoint: dict[str, int] = {}
        for log in matching:
            by_endpoint[log.endpoint] = by_endpoint.get(log.endpoint, 0) + 1
        return build_usage_stats(total, successful, average, by_endpoint)
