"""Pydantic schemas for authentication workflows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials payload submitted to the login endpoint."""

    login: str = Field(..., max_length=320, description="Username or email address")
    password: str


class TokenResponse(BaseModel):
    """JWT token response returned to the caller."""

    access_token: str
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    """Details of the user behind a valid access token."""

    user_id: int
    username: str
    email: str
    role: str
    token_type: str = "bearer"
