from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = "Blog API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    database_scheme: str = "postgresql+psycopg"
    database_host: str = "localhost"
    database_port: int = 5432
    database_user: str = "blog_admin"
    database_password: str = "blog_password"
    database_name: str = "blog"
    # Full URL (e.g. sqlite) taking precedence over the individual parts above
    database_url_override: str | None = None

    jwt_secret_key: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expires_minutes: int = 60 * 24

    cors_allowed_origins: str | list[str] = "http://localhost:3000"

    # API key gate
    api_prefix: str = "/api/v1"
    api_key_header: str = "x-api-key"
    api_key_backend: Literal["database", "memory"] = "database"

    # Usage log pagination
    usage_logs_default_limit: int = 100
    usage_logs_max_limit: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BLOG_",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        """Assemble a SQLAlchemy compatible database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"{self.database_scheme}://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def resolved_cors_allowed_origins(self) -> list[str]:
        """Return the configured CORS origins as a normalized list."""

        if isinstance(self.cors_allowed_origins, str):
            return [
                origin.strip()
                for origin in self.cors_allowed_origins.split(",")
                if origin.strip()
            ]

        return list(self.cors_allowed_origins)

    @property
    def normalized_api_prefix(self) -> str:
        """Return the gated API prefix with a leading and no trailing slash."""

        return "/" + self.api_prefix.strip("/")


@lru_cache
def get_settings() -> Settings:
    """Cache settings to avoid re-parsing environment files."""
    return Settings()
