from __future__ import annotations

from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from habit_calendar.utils.timezone_utils import validate_timezone


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./habit_calendar.db"

    # Local notifications
    NOTIFICATIONS_AUTHORIZED: bool = True
    # Same cap the mobile platforms put on pending local notifications
    MAX_PENDING_NOTIFICATIONS: int = Field(default=64, ge=1)
    NOTIFICATION_SOUND: str = "default"

    # Others
    DEFAULT_TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DEFAULT_TIMEZONE")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        if not validate_timezone(value):
            raise ValueError(f"unknown timezone {value!r}, use an IANA name or UTC+N")
        return value


settings = Settings()
