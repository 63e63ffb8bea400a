"""Database models package."""

from .user import User
from .api_key import ApiKey
from .api_usage_log import ApiUsageLog
from .post import Post

__all__ = ["ApiKey", "ApiUsageLog", "Post", "User"]
