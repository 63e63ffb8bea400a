"""Pydantic schemas for public user profiles."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserPublic(BaseModel):
    """User fields that may be exposed to API key holders."""

    id: int
    username: str
    real_name: str | None
    bio: str | None
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    users: list[UserPublic]
    total: int
