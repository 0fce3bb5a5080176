"""Application settings and configuration.

This module defines all configuration options for the secure stream service.
Settings are loaded from environment variables with sensible defaults and are
treated as read-only once the application has started.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SIGNING_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Settings can be overridden via environment variables or a ``.env`` file.
    """

    # Application metadata
    app_name: str = Field(default="Secure Stream", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="STREAM_LOG_LEVEL")

    # Listener
    host: str = Field(default="0.0.0.0", alias="STREAM_SERVER_HOST")
    port: int = Field(default=8787, alias="STREAM_SERVER_PORT")

    # Token signing and lifetime
    signing_secret: str = Field(default=DEFAULT_SIGNING_SECRET, alias="STREAM_SIGNING_SECRET")
    token_ttl_seconds: int = Field(default=45, ge=1, alias="STREAM_TOKEN_TTL_SECONDS")
    token_grace_seconds: int = Field(default=10, ge=0, alias="STREAM_TOKEN_GRACE_SECONDS")

    # Request provenance (exact match for Origin, prefix match for Referer)
    allowed_origin: str = Field(default="http://localhost:3000", alias="STREAM_ALLOWED_ORIGIN")

    # Session concurrency
    session_idle_seconds: int = Field(default=120, ge=1, alias="STREAM_SESSION_IDLE_SECONDS")
    sweep_interval_seconds: float = Field(default=30.0, gt=0, alias="STREAM_SWEEP_INTERVAL_SECONDS")

    # Token issuance throttling
    token_rate_limit_per_minute: int = Field(
        default=12,
        ge=1,
        alias="STREAM_TOKEN_RATE_LIMIT_PER_MINUTE",
    )
    rate_window_seconds: int = Field(default=60, ge=1, alias="STREAM_RATE_WINDOW_SECONDS")

    # Stream catalog; None selects the built-in catalog
    catalog_path: str | None = Field(default=None, alias="STREAM_CATALOG_PATH")

    # Shared state backend
    state_backend: Literal["memory", "redis"] = Field(default="memory", alias="STREAM_STATE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @property
    def uses_default_secret(self) -> bool:
        """Return True when the signing secret was never configured."""
        return self.signing_secret == DEFAULT_SIGNING_SECRET

    @property
    def max_token_age_seconds(self) -> int:
        """Return the oldest ``iat`` age a presented token may have."""
        return self.token_ttl_seconds + self.token_grace_seconds


settings = Settings()
