"""
Runtime configuration for the marketplace client.

Loads optional overrides from the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding variables already set in the environment
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    api_base_url: str = Field(default="https://olx-server.makkenzo.com", alias="API_BASE_URL")
    http_timeout: float = Field(default=10.0, alias="HTTP_TIMEOUT")

    # Toasts auto-dismiss after this many milliseconds
    notification_duration_ms: int = Field(default=3000, alias="NOTIFICATION_DURATION_MS")

    session_storage_path: Path = Field(
        default=BASE_DIR / ".market_client" / "session.json",
        alias="SESSION_STORAGE_PATH",
    )

    blocked_users_page_size: int = Field(default=10, alias="BLOCKED_USERS_PAGE_SIZE")
    balance_history_page_size: int = Field(default=20, alias="BALANCE_HISTORY_PAGE_SIZE")
    deals_page_size: int = Field(default=10, alias="DEALS_PAGE_SIZE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def notification_duration(self) -> float:
        """Dismiss delay in seconds, as expected by the event loop timers."""

        return max(self.notification_duration_ms, 0) / 1000


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
