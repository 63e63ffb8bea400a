"""Service layer used by the routers and the API key gate."""

from .api_keys import ApiKeyService, build_api_key_service

__all__ = ["ApiKeyService", "build_api_key_service"]
