"""Repository exports."""

from .api_key import ApiKeyRepository
from .api_usage_log import ApiUsageLogRepository
from .post import PostRepository
from .user import UserRepository

__all__ = [
    "ApiKeyRepository",
    "ApiUsageLogRepository",
    "PostRepository",
    "UserRepository",
]
