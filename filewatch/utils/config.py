"""
Configuration management for filewatch.

Uses pydantic-settings to load configuration from environment variables
(prefixed with ``FILEWATCH_``) and .env files.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from filewatch.watching.events import EventKind

DEFAULT_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT

    # Watch Configuration
    event_kinds: str = "create,modify,delete"
    poll_interval: Optional[float] = None  # seconds; None blocks on the watch service

    # Watchdog Configuration
    use_polling_observer: bool = False
    polling_observer_timeout: float = 1.0  # seconds

    model_config = SettingsConfigDict(
        env_prefix="FILEWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("event_kinds")
    @classmethod
    def validate_event_kinds(cls, value: str) -> str:
        if not EventKind.parse_many(value.split(',')):
            raise ValueError("at least one event kind is required")
        return value

    @field_validator("poll_interval", "polling_observer_timeout")
    @classmethod
    def validate_positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("must be greater than zero")
        return value

    def get_event_kinds(self) -> list[EventKind]:
        """Parse event kinds into list."""
        return EventKind.parse_many(self.event_kinds.split(','))


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
