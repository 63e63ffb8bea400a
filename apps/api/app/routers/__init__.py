from . import api_keys, auth, health, v1  # noqa: F401

__all__ = ["api_keys", "auth", "health", "v1"]
