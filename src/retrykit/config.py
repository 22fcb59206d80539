"""
Configuration settings for retrykit.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # "production" switches logs to JSON

    # === Retry Policy ===
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_BACKOFF_MS: int = Field(default=100, ge=0)  # Exponential coefficient, 0 disables backoff
    RETRY_MAX_DELAY_MS: int = Field(default=30_000, ge=0)  # Cap on any single wait
    RETRY_JITTER_MS: int = Field(default=0, ge=0)  # Uniform jitter added to each wait
    RETRY_TIMEOUT_SECONDS: Optional[float] = Field(default=None, gt=0)  # Overall budget since first attempt
    RETRY_MAX_HISTORY: int = Field(default=100, ge=1)  # Most recent errors kept per execution

    # === HTTP Client ===
    HTTP_BASE_URL: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # === Monitoring ===
    METRICS_ENABLED: bool = True
