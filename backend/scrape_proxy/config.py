"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every option has a working default: the service starts with no environment at all
    - get_settings() is cached (lru_cache) — single instance per process
    - Durations are milliseconds; properties expose seconds for asyncio

Design Decisions:
    - Target page and API prefix are settings, not constants: upstream moves without a redeploy
    - PORT is read unprefixed so container platforms can inject it directly
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]
LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    """Proxy settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # HTTP
    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, lt=65536)

    # Upstream
    target_page_url: str = "https://www.jellyjelly.com/feed"
    api_url_prefix: str = (
        "https://cbtzdoasmkbbiwnyoxvz.supabase.co/rest/v1/shareable_data"
    )

    # Refresh cycle
    refresh_interval_ms: int = Field(default=30_000, gt=0)
    settle_delay_ms: int = Field(default=3_000, ge=0)
    navigation_timeout_ms: int = Field(default=60_000, gt=0)
    launch_timeout_ms: int = Field(default=30_000, gt=0)
    wait_until: WaitUntil = "domcontentloaded"

    # Browser
    browser_args: list[str] = ["--no-sandbox"]
    headless: bool = True

    # Observability
    log_level: LogLevel = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        # uvicorn only knows the lower-cased names; aliases like WARN are refused here
        return v.upper() if isinstance(v, str) else v

    @field_validator("api_url_prefix", "target_page_url")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """An empty prefix would match every request on the page."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000

    @property
    def settle_delay_seconds(self) -> float:
        return self.settle_delay_ms / 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()
