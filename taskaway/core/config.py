"""
Application configuration using Pydantic Settings.

Scheduler behaviour (cron expression, grace window, concurrency) is controlled
through environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./taskaway.db"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ===========================================
    # Scheduler
    # ===========================================
    # Start the daily timer on application startup
    SCHEDULER_ENABLED: bool = True
    # Standard 5-field crontab, evaluated in SCHEDULER_TIMEZONE
    SCHEDULER_CRON: str = "0 2 * * *"
    SCHEDULER_TIMEZONE: str = "UTC"
    SCHEDULER_DESCRIPTION: str = "Daily at 2 AM UTC"

    # Completed tasks older than this are moved to Closed
    AUTO_CLOSE_GRACE_HOURS: int = 24

    # Max templates evaluated at once within a single recurring sweep.
    # SQLite serializes writers, so anything above 1 only overlaps reads.
    RECURRING_SWEEP_CONCURRENCY: int = 1

    @property
    def is_test(self) -> bool:
        """Check if running under the test suite."""
        return self.ENVIRONMENT == "test"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
