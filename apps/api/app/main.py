"""Application factory for the blog API.

Run with ``uvicorn app.main:create_app --factory``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, get_settings
from app.db import create_session_factory
from app.middleware import ApiKeyAuthMiddleware
from app.routers import api_keys, auth, health, v1
from app.services.api_keys import ApiKeyService, build_api_key_service


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "Starting %s %s (API key backend: %s, gated prefix: %s)",
        settings.app_name,
        settings.app_version,
        settings.api_key_backend,
        settings.normalized_api_prefix,
    )
    yield
    logger.info("Stopped %s", settings.app_name)


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    api_key_service: ApiKeyService | None = None,
) -> FastAPI:
    """Build the application, wiring the session factory and the API key service."""

    settings = settings or get_settings()
    logging.getLogger("app").setLevel(settings.log_level.upper())

    session_factory = session_factory or create_session_factory(settings)
    api_key_service = api_key_service or build_api_key_service(settings, session_factory)

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.api_key_service = api_key_service

    # Added first so CORS wraps it and preflight requests never reach the gate
    app.add_middleware(
        ApiKeyAuthMiddleware,
        service=api_key_service,
        api_prefix=settings.normalized_api_prefix,
        header_name=settings.api_key_header,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.resolved_cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(api_keys.router)
    app.include_router(v1.router, prefix=settings.normalized_api_prefix)
    app.include_router(health.router)

    return app
