"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Lands DB monitoring service.

    All settings can be overridden via environment variables.
    Prefix is not used to allow standard env var names (e.g., REDIS_URL).
    Component-specific settings live next to their component
    (``AlertConfig``, ``NotificationConfig``, ``EmailConfig``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Storage backend for thresholds, alert history, and webhook logs
    storage_backend: Literal["memory", "redis"] = "memory"
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8001, ge=1, le=65535)
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = False
    # Webhook trigger requests wait for retries, so this is generous (0 disables)
    request_timeout_seconds: float = Field(default=120.0, ge=0.0)

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def uses_redis(self) -> bool:
        """Check if alert state is persisted in Redis."""
        return self.storage_backend == "redis"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
