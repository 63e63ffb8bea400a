"""API key service interface and the behaviour shared by every backend.

``ApiKeyService`` is the only entry point the routers and the gate use. Key
generation, validation and the statistics arithmetic live here; concrete
backends provide storage primitives and the queries over the usage log.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from app.core.permissions import PermissionSet
from app.core.security import generate_api_key, get_api_key_prefix, hash_api_key
from app.schemas.api_key import (
    ApiKeyRead,
    ApiKeyUpdate,
    ApiUsageLogRead,
    UsageFilter,
    UsageLogEntryCreate,
    UsageStats,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiKeyValidation:
    """Outcome of validating a presented API key."""

    valid: bool
    key: ApiKeyRead | None = None
    permissions: PermissionSet | None = None


INVALID_KEY = ApiKeyValidation(valid=False)


@dataclass(frozen=True)
class CreatedApiKey:
    """A newly issued key. ``plaintext_secret`` is never available again."""

    key: ApiKeyRead
    plaintext_secret: str


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_usage_stats(
    total: int,
    successful: int,
    avg_response_time_ms: float,
    requests_by_endpoint: dict[str, int],
) -> UsageStats:
    """Assemble usage statistics, defining the rates as 0 over an empty set."""
    if total == 0:
        return UsageStats()
    return UsageStats(
        total_requests=total,
        success_rate=successful / total * 100,
        avg_response_time_ms=avg_response_time_ms,
        requests_by_endpoint=requests_by_endpoint,
    )


class ApiKeyService(ABC):
    """Issues, validates and manages API keys and records their usage."""

    def create_key(
        self,
        owner_id: int,
        name: str,
        permissions: PermissionSet | None = None,
        expires_at: datetime | None = None,
    ) -> CreatedApiKey:
        """Issue a new key and return its metadata with the one-time plaintext secret."""

        material = generate_api_key()
        key = self._insert_key(
            owner_id=owner_id,
            name=name,
            prefix=material.prefix,
            key_hash=material.digest,
            permissions=permissions or PermissionSet(),
            expires_at=expires_at,
        )
        logger.info("Issued API key id=%s prefix=%s for user %s", key.id, key.prefix, owner_id)
        return CreatedApiKey(key=key, plaintext_secret=material.secret)

    def validate(self, secret: str) -> ApiKeyValidation:
        """Check a presented secret against the store.

        Lookup failures are treated as an invalid key. Updating ``last_used_at``
        is best effort and never changes the outcome.
        """

        prefix = get_api_key_prefix(secret)
        digest = hash_api_key(secret)
        try:
            key = self._find_enabled_key(prefix, digest)
        except Exception:
            logger.exception("API key lookup failed for prefix %s, rejecting request", prefix)
            return INVALID_KEY

        if key is None:
            return INVALID_KEY

        now = datetime.now(timezone.utc)
        if key.expires_at is not None and as_utc(key.expires_at) < now:
            logger.info("Rejected expired API key id=%s", key.id)
            return INVALID_KEY

        try:
            self._touch_last_used(key.id, now)
        except Exception:
            logger.warning("Could not update last_used_at for API key id=%s", key.id, exc_info=True)
        else:
            key = key.model_copy(update={"last_used_at": now})

        return ApiKeyValidation(valid=True, key=key, permissions=key.permissions)

    # Storage primitives used by create_key / validate

    @abstractmethod
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
        """Persist a new key record."""

    @abstractmethod
    def _find_enabled_key(self, prefix: str, key_hash: str) -> ApiKeyRead | None:
        """Return the enabled key matching both prefix and digest."""

    @abstractmethod
    def _touch_last_used(self, key_id: int, used_at: datetime) -> None:
        """Record the time of the latest successful validation."""

    # Lifecycle

    @abstractmethod
    def get_key(self, key_id: int) -> ApiKeyRead | None:
        """Return a key's metadata, or ``None`` if it does not exist."""

    @abstractmethod
    def update_key(self, key_id: int, changes: ApiKeyUpdate) -> ApiKeyRead | None:
        """Apply a partial update, returning ``None`` if the key does not exist."""

    @abstractmethod
    def delete_key(self, key_id: int) -> bool:
        """Hard-delete a key. Returns ``False`` if it did not exist."""

    @abstractmethod
    def list_keys(self, owner_id: int) -> list[ApiKeyRead]:
        """Return a user's keys, newest first."""

    # Usage accounting

    @abstractmethod
    def log_usage(self, entry: UsageLogEntryCreate) -> None:
        """Append one usage log entry."""

    @abstractmethod
    def get_logs(
        self, usage_filter: UsageFilter, limit: int = 100, offset: int = 0
    ) -> list[ApiUsageLogRead]:
        """Return matching log entries newest first."""

    @abstractmethod
    def get_stats(self, usage_filter: UsageFilter) -> UsageStats:
        """Summarize matching log entries."""
