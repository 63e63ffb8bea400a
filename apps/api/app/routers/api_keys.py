"""API key management endpoints for the dashboard."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status

from app.dependencies import ApiKeyServiceDep, CurrentUserDep, SessionDep, SettingsDep
from app.models.user import User
from app.repositories.user import UserRepository
from app.schemas.api_key import (
    ApiKeyCreate,
    ApiKeyCreated,
    ApiKeyListResponse,
    ApiKeyLogsResponse,
    ApiKeyRead,
    ApiKeyUpdate,
    Pagination,
    UsageFilter,
)
from app.services.api_keys import ApiKeyService
from app.services.api_keys.base import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/api-keys", tags=["API Keys"])
_user_repository = UserRepository()


def _require_key_access(user: User, key_id: int, service: ApiKeyService) -> ApiKeyRead:
    """Return the key if the user is an administrator or its managing owner."""

    if not user.is_admin and not user.can_manage_api_keys:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage API keys",
        )

    api_key = service.get_key(key_id)
    if api_key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found")

    if not user.is_admin and api_key.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage this API key",
        )
    return api_key


@router.get("/", response_model=ApiKeyListResponse)
def list_api_keys(
    user: CurrentUserDep,
    service: ApiKeyServiceDep,
    user_id: int | None = Query(None, description="List another user's keys (administrators only)"),
) -> ApiKeyListResponse:
    """List the caller's API keys, or another user's keys for administrators."""

    if user_id is not None and user_id != user.id and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view other users' keys",
        )
    if not user.is_admin and not user.can_manage_api_keys:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage API keys",
        )

    owner_id = user_id if user_id is not None else user.id
    return ApiKeyListResponse(api_keys=service.list_keys(owner_id))


@router.post("/", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
def create_api_key(
    payload: ApiKeyCreate,
    user: CurrentUserDep,
    service: ApiKeyServiceDep,
    db: SessionDep,
) -> ApiKeyCreated:
    """Create a new API key. The full key is only ever returned here."""

    if not user.is_admin and not user.can_create_api_keys:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to create API keys",
        )

    owner_id = user.id
    if payload.user_id is not None and payload.user_id != user.id:
        if not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to create keys for other users",
            )
        if _user_repository.get(db, payload.user_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        owner_id = payload.user_id

    created = service.create_key(
        owner_id,
        payload.name,
        permissions=payload.permissions,
        expires_at=payload.expires_at,
    )
    return ApiKeyCreated(api_key=created.key, key=created.plaintext_secret)


@router.get("/{key_id}", response_model=ApiKeyRead)
def read_api_key(key_id: int, user: CurrentUserDep, service: ApiKeyServiceDep) -> ApiKeyRead:
    """Return a single API key's metadata."""

    return _require_key_access(user, key_id, service)


@router.put("/{key_id}", response_model=ApiKeyRead)
def update_api_key(
    key_id: int,
    payload: ApiKeyUpdate,
    user: CurrentUserDep,
    service: ApiKeyServiceDep,
) -> ApiKeyRead:
    """Rename, re-scope, enable/disable or change the expiry of an API key."""

    _require_key_access(user, key_id, service)

    updated = service.update_key(key_id, payload)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found")
    logger.info("User %s updated API key %s: %s", user.id, key_id, sorted(payload.model_fields_set))
    return updated


@router.delete("/{key_id}")
def delete_api_key(key_id: int, user: CurrentUserDep, service: ApiKeyServiceDep) -> dict[str, object]:
    """Permanently delete an API key."""

    _require_key_access(user, key_id, service)

    if not service.delete_key(key_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API key not found")
    logger.info("User %s deleted API key %s", user.id, key_id)
    return {"status": "deleted", "id": key_id}


@router.get("/{key_id}/logs", response_model=ApiKeyLogsResponse)
def read_api_key_logs(
    key_id: int,
    user: CurrentUserDep,
    service: ApiKeyServiceDep,
    settings: SettingsDep,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
) -> ApiKeyLogsResponse:
    """Return usage logs and statistics for one API key."""

    _require_key_access(user, key_id, service)

    page_size = limit if limit is not None else settings.usage_logs_default_limit
    if page_size > settings.usage_logs_max_limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"limit must not exceed {settings.usage_logs_max_limit}",
        )
    if start_date is not None and end_date is not None and as_utc(start_date) > as_utc(end_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )

    usage_filter = UsageFilter(api_key_id=key_id, start_date=start_date, end_date=end_date)
    logs = service.get_logs(usage_filter, limit=page_size, offset=offset)
    stats = service.get_stats(usage_filter)

    return ApiKeyLogsResponse(
        logs=logs,
        stats=stats,
        pagination=Pagination(limit=page_size, offset=offset, has_more=len(logs) == page_size),
    )
