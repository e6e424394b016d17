"""
Application settings and configuration management.

This module handles all environment variables and client configuration
using Pydantic settings management for type safety and validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Settings are validated on load and cached for performance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Backend
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        alias="REVIEW_API_BASE_URL",
    )
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    use_response_cache: bool = Field(default=True, alias="USE_RESPONSE_CACHE")

    # Job polling
    poll_interval_seconds: float = Field(default=2.0, alias="POLL_INTERVAL_SECONDS")
    max_poll_attempts: int = Field(default=300, alias="MAX_POLL_ATTEMPTS")
    progress_policy: Literal["ratchet", "clamp"] = Field(
        default="ratchet",
        alias="PROGRESS_POLICY",
    )

    # Application Configuration
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        alias="LOG_LEVEL"
    )
    log_json: bool = Field(default=False, alias="LOG_JSON")

    @field_validator("api_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be joined with a leading slash."""
        if not v or not str(v).startswith(("http://", "https://")):
            raise ValueError("REVIEW_API_BASE_URL must be an http(s) URL")
        return str(v).rstrip("/")

    @field_validator("poll_interval_seconds", "request_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Durations must be non-negative")
        return v

    @field_validator("max_poll_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """0 disables the poll budget."""
        if v < 0:
            raise ValueError("MAX_POLL_ATTEMPTS must be >= 0")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
