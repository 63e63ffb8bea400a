"""FastAPI dependencies shared by the routers.

Provides:
- the database session and the API key service built by the app factory
- the dashboard user behind a JWT bearer token
- the API key resolved by the gate for requests under the API prefix
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.security import decode_access_token
from app.db import get_db
from app.models.user import User
from app.repositories.user import UserRepository
from app.schemas.api_key import ApiKeyRead
from app.services.api_keys import ApiKeyService

_bearer_scheme = HTTPBearer(auto_error=True)
_user_repository = UserRepository()


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return request.app.state.settings


def get_api_key_service(request: Request) -> ApiKeyService:
    """Return the API key service selected by the app factory."""
    return request.app.state.api_key_service


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> User:
    """Validate the JWT bearer token and return the referenced dashboard user."""

    try:
        payload = decode_access_token(credentials.credentials, settings=settings)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    user = _user_repository.get(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    return user


def get_authenticated_api_key(request: Request) -> ApiKeyRead:
    """Return the API key the gate attached to this request."""

    api_key = getattr(request.state, "api_key", None)
    if api_key is None:
        # Only reachable if a gated router is mounted outside the API prefix
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API key required")
    return api_key


SessionDep = Annotated[Session, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ApiKeyServiceDep = Annotated[ApiKeyService, Depends(get_api_key_service)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
ApiKeyDep = Annotated[ApiKeyRead, Depends(get_authenticated_api_key)]
