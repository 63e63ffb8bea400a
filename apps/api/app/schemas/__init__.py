"""Pydantic schemas used by the FastAPI application."""

from .api_key import (
    ApiKeyCreate,
    ApiKeyCreated,
    ApiKeyListResponse,
    ApiKeyLogsResponse,
    ApiKeyRead,
    ApiKeyUpdate,
    ApiUsageLogRead,
    Pagination,
    UsageFilter,
    UsageLogEntryCreate,
    UsageStats,
)
from .auth import LoginRequest, SessionResponse, TokenResponse
from .post import PostCreate, PostListResponse, PostPagination, PostRead, PostUpdate
from .user import UserListResponse, UserPublic

__all__ = [
    "ApiKeyCreate",
    "ApiKeyCreated",
    "ApiKeyListResponse",
    "ApiKeyLogsResponse",
    "ApiKeyRead",
    "ApiKeyUpdate",
    "ApiUsageLogRead",
    "LoginRequest",
    "Pagination",
    "PostCreate",
    "PostListResponse",
    "PostPagination",
    "PostRead",
    "PostUpdate",
    "SessionResponse",
    "TokenResponse",
    "UsageFilter",
    "UsageLogEntryCreate",
    "UsageStats",
    "UserListResponse",
    "UserPublic",
]
