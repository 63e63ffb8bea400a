"""Authentication endpoints for the blog dashboard."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from app.core.security import create_access_token, verify_password
from app.dependencies import CurrentUserDep, SessionDep, SettingsDep
from app.repositories.user import UserRepository
from app.schemas.auth import LoginRequest, SessionResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])
_user_repository = UserRepository()


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: SessionDep, settings: SettingsDep) -> TokenResponse:
    """Authenticate a dashboard user and return a JWT access token."""

    login_name = payload.login.strip()
    if "@" in login_name:
        login_name = login_name.lower()
    user = _user_repository.get_by_login(db, login_name)
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.info("Rejected dashboard login for %r", login_name)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = create_access_token(
        subject=str(user.id),
        settings=settings,
        additional_claims={"username": user.username, "role": user.role},
    )
    return TokenResponse(access_token=token)


@router.get("/session", response_model=SessionResponse)
def read_session(user: CurrentUserDep) -> SessionResponse:
    """Validate the provided access token and return session details."""

    return SessionResponse(
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
    )
