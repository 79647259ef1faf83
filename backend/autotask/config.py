"""Centralized application settings loaded from environment variables."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./autotask.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:4000"]
    LOG_LEVEL: str = "INFO"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Calendar-day logic (scoring, reminder window) runs in this zone.
    # Empty means the host's local time.
    TIMEZONE: str = ""
    FRONTEND_URL: str = "http://localhost:3000"

    # Background sweeps
    SCHEDULER_ENABLED: bool = True
    REMINDER_HOUR: int = 8
    REMINDER_MINUTE: int = 0
    OVERDUE_INTERVAL_MINUTES: int = 60

    # Task listing
    DEFAULT_PAGE_LIMIT: int = 15
    MAX_PAGE_LIMIT: int = 100

    class Config:
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
