"""Pydantic schemas for API key management and usage reporting."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.core.permissions import PermissionSet


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ApiKeyCreate(BaseModel):
    """Request payload for creating a new API key."""

    name: str = Field(..., min_length=1, max_length=255, description="Human-readable name for the API key")
    permissions: Optional[PermissionSet] = Field(
        None, description="Capability flags; defaults to read-only access to posts"
    )
    expires_at: Optional[datetime] = Field(None, description="Optional expiration timestamp")
    user_id: Optional[int] = Field(None, description="Owner of the key (administrators only)")

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value):
        return _to_utc(value)


class ApiKeyUpdate(BaseModel):
    """Partial update for an API key. The secret itself can never be changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    permissions: Optional[PermissionSet] = None
    enabled: Optional[bool] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "permissions", "enabled")
    @classmethod
    def _reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value):
        return _to_utc(value)

    def changes(self) -> dict[str, object]:
        """Return only the fields the caller explicitly sent."""
        data: dict[str, object] = {}
        for field in self.model_fields_set:
            value = getattr(self, field)
            data[field] = value.model_dump() if isinstance(value, PermissionSet) else value
        return data


class ApiKeyRead(BaseModel):
    """API key metadata. Never carries the secret or its digest."""

    id: int
    owner_id: int
    name: str
    prefix: str = Field(..., description="First 8 characters of the key")
    permissions: PermissionSet
    enabled: bool
    expires_at: Optional[datetime]
    last_used_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def masked_key(self) -> str:
        """Prefix followed by a mask, for display in the dashboard."""
        return f"{self.prefix}..."


class ApiKeyCreated(BaseModel):
    """Response returned when an API key is successfully created."""

    api_key: ApiKeyRead
    key: str = Field(..., description="The full API key - shown only once")


class ApiKeyListResponse(BaseModel):
    """Response for listing API keys."""

    api_keys: list[ApiKeyRead]


class UsageLogEntryCreate(BaseModel):
    """A usage log entry as recorded by the API key gate."""

    api_key_id: Optional[int] = None
    endpoint: str = Field(..., max_length=255)
    method: str = Field(..., max_length=10)
    status_code: int
    response_time_ms: int = Field(0, ge=0)
    request_ip: str = Field("unknown", max_length=45)
    user_agent: Optional[str] = "unknown"
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value):
        return _to_utc(value)


class ApiUsageLogRead(BaseModel):
    """A usage log entry as shown in the dashboard log table."""

    id: int
    api_key_id: Optional[int]
    api_key_name: Optional[str] = None
    api_key_prefix: Optional[str] = None
    endpoint: str
    method: str
    status_code: int
    response_time_ms: int
    request_ip: str
    user_agent: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UsageFilter(BaseModel):
    """Restricts usage queries to one key and/or an inclusive date range."""

    api_key_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_range(cls, value):
        return _to_utc(value)


class UsageStats(BaseModel):
    """Summary statistics over the usage log."""

    total_requests: int = 0
    success_rate: float = 0.0
    avg_response_time_ms: float = 0.0
    requests_by_endpoint: dict[str, int] = Field(default_factory=dict)


class Pagination(BaseModel):
    limit: int
    offset: int
    has_more: bool


class ApiKeyLogsResponse(BaseModel):
    """Logs, statistics and pagination for one API key."""

    logs: list[ApiUsageLogRead]
    stats: UsageStats
    pagination: Pagination
