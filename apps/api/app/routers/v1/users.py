"""Read-only user profile endpoints for API key holders."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from app.dependencies import ApiKeyDep, SessionDep
from app.repositories.user import UserRepository
from app.schemas.user import UserListResponse, UserPublic

router = APIRouter(prefix="/users", tags=["Users"])
_user_repository = UserRepository()


@router.get("", response_model=UserListResponse)
def list_users(
    db: SessionDep,
    api_key: ApiKeyDep,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> UserListResponse:
    users = _user_repository.list_paginated(db, limit=limit, offset=offset)
    return UserListResponse(
        users=[UserPublic.model_validate(user) for user in users],
        total=_user_repository.count(db),
    )


@router.get("/{user_id}", response_model=UserPublic)
def read_user(user_id: int, db: SessionDep, api_key: ApiKeyDep) -> UserPublic:
    user = _user_repository.get(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic.model_validate(user)
