"""Repository for API key database operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.api_key import ApiKey
from app.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Manages API key persistence and retrieval."""

    def __init__(self) -> None:
        super().__init__(ApiKey)

    def create(self, session: Session, data: dict[str, Any]) -> ApiKey:
        """Create a new API key record."""
        api_key = ApiKey(**data)
        return self.add(session, api_key)

    def get_enabled_by_prefix_and_hash(
        self, session: Session, prefix: str, key_hash: str
    ) -> ApiKey | None:
        """Retrieve the enabled API key matching both prefix and digest."""
        stmt = select(ApiKey).where(
            ApiKey.prefix == prefix,
            ApiKey.key_hash == key_hash,
            ApiKey.enabled == True,  # noqa: E712
        )
        result = session.execute(stmt)
        return result.scalars().first()

    def list_by_owner(self, session: Session, owner_id: int) -> list[ApiKey]:
        """Return the keys owned by a user, newest first."""
        stmt = (
            select(ApiKey)
            .where(ApiKey.owner_id == owner_id)
            .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
        )
        return list(session.scalars(stmt).all())

    def update(self, session: Session, api_key: ApiKey, data: dict[str, Any]) -> ApiKey:
        """Apply the supplied field changes to an API key."""
        for field, value in data.items():
            setattr(api_key, field, value)
        api_key.updated_at = datetime.now(timezone.utc)
        session.flush()
        session.refresh(api_key)
        return api_key

    def touch_last_used(self, session: Session, key_id: int, used_at: datetime) -> None:
        """Set last_used_at with a single-row UPDATE statement."""
        stmt = update(ApiKey).where(ApiKey.id == key_id).values(last_used_at=used_at)
        session.execute(stmt)
