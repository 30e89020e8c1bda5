"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]

# Monitor window and polling cadence.
DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 100
DEFAULT_REFRESH_INTERVAL_MS = 2000

# Simulated latency range, inclusive on both ends.
DEFAULT_LATENCY_MIN_MS = 40
DEFAULT_LATENCY_MAX_MS = 260


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "mock-portal"
    app_env: str = "dev"
    log_level: str = "INFO"
    database_url: str = ""
    storage_timeout_s: float = Field(default=5.0, ge=0.1)
    recent_logs_limit: int = Field(default=DEFAULT_RECENT_LIMIT, ge=1, le=MAX_RECENT_LIMIT)
    refresh_interval_ms: int = Field(default=DEFAULT_REFRESH_INTERVAL_MS, ge=1)
    latency_min_ms: int = Field(default=DEFAULT_LATENCY_MIN_MS, ge=0)
    latency_max_ms: int = Field(default=DEFAULT_LATENCY_MAX_MS, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="MOCK_PORTAL_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def _check_latency_range(self) -> "Settings":
        if self.latency_min_ms > self.latency_max_ms:
            raise ValueError("latency_min_ms must not exceed latency_max_ms")
        return self

    def resolved_database_url(self) -> str:
        return self.database_url or os.getenv("DATABASE_URL", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
