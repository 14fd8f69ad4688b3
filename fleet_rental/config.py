# fleet_rental/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Entity API (hosted data store) ────────────────────────────────────
    ENTITY_API_BASE_URL: str = "https://autolab-fleetmanager-backend-api.onrender.com/api"
    ENTITY_API_TOKEN: Optional[str] = None
    ENTITY_API_TIMEOUT: float = 30.0

    # ── Local workflow journal ────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./fleet_rental.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Polling ───────────────────────────────────────────────────────────
    NOTIFICATION_POLL_SECONDS: int = 30
    GPS_POLL_SECONDS: int = 30
    NOTIFICATION_FEED_SIZE: int = 10

    # ── Booking rules ─────────────────────────────────────────────────────
    CONFIRMATION_WINDOW_HOURS: int = 24
    JOURNAL_STALE_MINUTES: int = 15     # "started" journal rows older than this are treated as abandoned
    DEFAULT_PICKUP_TIME: str = "09:00:00"
    DEFAULT_DROPOFF_TIME: str = "17:00:00"

    # ── GPS home base (overridden by ThemeSettings when present) ──────────
    HOME_BASE_LAT: float = -31.9523
    HOME_BASE_LNG: float = 115.8613

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "fleet.log"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
