"""API key issuance, validation and usage accounting."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings
from app.services.api_keys.base import (
    INVALID_KEY,
    ApiKeyService,
    ApiKeyValidation,
    CreatedApiKey,
    build_usage_stats,
)
from app.services.api_keys.database import DatabaseApiKeyService
from app.services.api_keys.memory import InMemoryApiKeyService

logger = logging.getLogger(__name__)


def build_api_key_service(
    settings: Settings, session_factory: sessionmaker[Session]
) -> ApiKeyService:
    """Select the API key backend named by ``settings.api_key_backend``."""

    if settings.api_key_backend == "memory":
        logger.warning("Using the in-memory API key store; keys and usage logs are lost on restart")
        return InMemoryApiKeyService()
    return DatabaseApiKeyService(session_factory)


__all__ = [
    "INVALID_KEY",
    "ApiKeyService",
    "ApiKeyValidation",
    "CreatedApiKey",
    "DatabaseApiKeyService",
    "InMemoryApiKeyService",
    "build_api_key_service",
    "build_usage_stats",
]
