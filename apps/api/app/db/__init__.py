"""Database helpers and base objects."""

from .base import Base, metadata
from .session import create_session_factory, get_db

__all__ = [
    "Base",
    "create_session_factory",
    "get_db",
    "metadata",
]
