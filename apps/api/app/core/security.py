"""Security helpers for password hashing, JWT generation and API key material."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt

from app.core.config import Settings, get_settings

API_KEY_BYTES = 32
API_KEY_PREFIX_LENGTH = 8


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def create_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""

    if not password:
        raise ValueError("Password must not be empty")

    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, stored_hash: str) -> bool:
    """Validate a password against the stored bcrypt hash."""

    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    *,
    subject: str,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """Generate a signed JWT for the provided subject."""

    active_settings = settings or get_settings()
    algorithm = active_settings.jwt_algorithm
    now = datetime.now(timezone.utc)
    expires = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=active_settings.jwt_access_token_expires_minutes)
    )

    header = {"alg": algorithm, "typ": "JWT"}
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if additional_claims:
        payload.update(additional_claims)

    header_segment = _b64encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_segment = _b64encode(
        json.dumps(payload, separators=(",", ":")).encode("utf-8")
    )

    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    signature = hmac.new(
        active_settings.jwt_secret_key.encode("utf-8"),
        signing_input,
        hashlib.sha256,
    ).digest()
    signature_segment = _b64encode(signature)

    return f"{header_segment}.{payload_segment}.{signature_segment}"


def decode_access_token(
    token: str, *, settings: Settings | None = None
) -> dict[str, Any]:
    """Decode and validate a JWT created by ``create_access_token``."""

    active_settings = settings or get_settings()
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Token structure invalid")

    header_segment, payload_segment, signature_segment = parts
    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    expected_signature = hmac.new(
        active_settings.jwt_secret_key.encode("utf-8"),
        signing_input,
        hashlib.sha256,
    ).digest()
    try:
        provided_signature = _b64decode(signature_segment)
    except ValueError as exc:
        raise ValueError("Token signature malformed") from exc
    if not hmac.compare_digest(provided_signature, expected_signature):
        raise ValueError("Token signature mismatch")

    try:
        payload_data = json.loads(_b64decode(payload_segment))
    except json.JSONDecodeError as exc:  # pragma: no cover
        raise ValueError("Token payload malformed") from exc

    exp = payload_data.get("exp")
    if exp is None:
        raise ValueError("Token missing expiration")
    now_ts = int(datetime.now(timezone.utc).timestamp())
    if now_ts >= int(exp):
        raise ValueError("Token expired")

    return payload_data


# API Key Management


@dataclass(frozen=True)
class GeneratedApiKey:
    """Freshly generated key material. ``secret`` must only be shown once."""

    secret: str
    prefix: str
    digest: str


def hash_api_key(api_key: str) -> str:
    """Return the SHA-256 hex digest stored in place of the API key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def get_api_key_prefix(api_key: str) -> str:
    """Extract the clear-text lookup prefix (first 8 characters) of an API key."""
    return api_key[:API_KEY_PREFIX_LENGTH]


def generate_api_key() -> GeneratedApiKey:
    """Generate a random 64 hex character API key with its prefix and digest."""
    secret = secrets.token_hex(API_KEY_BYTES)
    return GeneratedApiKey(
        secret=secret,
        prefix=get_api_key_prefix(secret),
        digest=hash_api_key(secret),
    )


def verify_api_key(api_key: str, stored_digest: str) -> bool:
    """Compare an API key against a stored digest in constant time."""
    return hmac.compare_digest(hash_api_key(api_key), stored_digest)
