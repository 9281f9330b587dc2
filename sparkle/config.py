"""
Sparkle Client — Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
every controller and client built for a session receives the same validated
instance without re-parsing the environment.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Sparkle client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Remote API
    # ------------------------------------------------------------------ #
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # ------------------------------------------------------------------ #
    # Realtime (Socket.IO)
    # ------------------------------------------------------------------ #
    REALTIME_URL: str = ""  # empty -> same host as API_BASE_URL
    REALTIME_NAMESPACE: str = "/chat"

    # ------------------------------------------------------------------ #
    # Session credential cookie
    # ------------------------------------------------------------------ #
    TOKEN_COOKIE_NAME: str = "token"
    TOKEN_TTL_DAYS: int = 1
    COOKIE_DOMAIN: str = "localhost"
    COOKIE_JAR_PATH: str = "~/.sparkle/cookies.txt"  # empty -> memory only
    CREDENTIAL_FERNET_KEY: str = ""  # empty -> token stored in clear

    # ------------------------------------------------------------------ #
    # Discovery / chat tuning
    # ------------------------------------------------------------------ #
    DISCOVERY_BATCH_SIZE: int = 10
    REPLENISH_THRESHOLD: int = 3
    CHAT_HISTORY_LIMIT: int = 50
    MATCH_NOTIFICATION_SECONDS: int = 5

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def realtime_endpoint(self) -> str:
        """Return the Socket.IO server URL, falling back to the API host."""
        return (self.REALTIME_URL or self.API_BASE_URL).rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator("REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Request timeout must be positive, got {v}")
        return v

    @field_validator("DISCOVERY_BATCH_SIZE", "CHAT_HISTORY_LIMIT", "TOKEN_TTL_DAYS")
    @classmethod
    def _count_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @field_validator("REPLENISH_THRESHOLD")
    @classmethod
    def _threshold_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Replenish threshold cannot be negative, got {v}")
        return v

    @field_validator("REALTIME_NAMESPACE")
    @classmethod
    def _namespace_has_leading_slash(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime::

        from sparkle.config import get_settings
        settings = get_settings()
    """
    return Settings()
