"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Gatekeeper limits are process-local: every worker keeps its own
    rate counter, so the effective ceiling scales with worker count.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"

    # --- CORS ---
    cors_allowed_origins: list[str] = []
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE"]
    cors_allowed_headers: list[str] = ["Content-Type", "X-CSRF-Token"]

    # --- Rate limiting ---
    rate_limit_max: int = Field(default=100, gt=0)
    rate_limit_window_seconds: int = Field(default=15 * 60, gt=0)
    rate_limit_cleanup_interval_seconds: int = Field(default=300, gt=0)
    # When False, clients without a forwarded address share the "unknown" bucket.
    reject_unidentified_clients: bool = False

    # --- CSRF ---
    csrf_cookie_max_age: int = Field(default=3600, gt=0)
    csrf_token_path: str = "/api/csrf-token"

    # --- Routing ---
    sign_in_path: str = "/login"
    # YAML access table; built-in defaults are used when unset.
    route_table_path: Path | None = None

    @field_validator("csrf_token_path", "sign_in_path")
    @classmethod
    def _must_be_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"Path must start with '/': {value!r}")
        return value

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from rental_portal.config import get_settings
        settings = get_settings()
    """
    return Settings()


settings = get_settings()
