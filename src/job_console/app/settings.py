"""Application settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "job-console"
    base_url: str = "http://127.0.0.1:8080"
    request_timeout_s: float = Field(default=10.0, gt=0.0)
    poll_interval_s: float = Field(default=2.0, gt=0.0)
    # Consecutive failed queries or unrecognized statuses before polling gives up;
    # None polls until a terminal status arrives.
    max_transient_errors: int | None = Field(default=5, ge=1)
    poll_timeout_s: float | None = Field(default=None, gt=0.0)
    job_delay_s: float = Field(default=0.5, ge=0.0)
    summary_max_words: int = Field(default=50, ge=1)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="JOB_CONSOLE_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
