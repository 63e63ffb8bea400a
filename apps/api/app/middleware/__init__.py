"""ASGI middleware used by the API."""

from .api_key_auth import ApiKeyAuthMiddleware, GateState

__all__ = ["ApiKeyAuthMiddleware", "GateState"]
