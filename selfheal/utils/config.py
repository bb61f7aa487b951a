# selfheal/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for element resolution and the browser session.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in project root
      3) Defaults below

    Explicit constructor arguments on RetryPolicy / ElementResolver win over
    anything loaded here.
    """

    # ---- Browser configuration ----
    HEADLESS: bool = Field(default=True, description="Run the browser headless")
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chromium, description="Playwright browser")
    VIEWPORT_WIDTH: int = Field(default=1366, ge=320, le=7680)
    VIEWPORT_HEIGHT: int = Field(default=768, ge=320, le=4320)
    SLOW_MO: int = Field(default=0, ge=0, description="Slow down actions (ms) for debugging")
    USER_AGENT: Optional[str] = Field(default=None)
    PAGE_LOAD_TIMEOUT: int = Field(default=30000, ge=1000, description="Navigation timeout (ms)")

    # ---- Retry policy ----
    MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Full cascades per operation")
    RETRY_DELAY_SECONDS: float = Field(default=2.0, ge=0, description="Pause between failed attempts")

    # ---- Strategy cascade ----
    STRATEGY_TIMEOUT_MS: int = Field(default=20000, ge=0, description="Polling budget for one strategy")
    POLL_INTERVAL_MS: int = Field(default=250, ge=1)

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./selfheal.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    # ---- Proxies ----
    PROXY_SERVER: Optional[str] = None
    PROXY_USERNAME: Optional[str] = None
    PROXY_PASSWORD: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown envs to keep things flexible
    )

    @field_validator("LOG_FILE", mode="before")
    @classmethod
    def _coerce_to_path(cls, v):
        if isinstance(v, Path):
            return v
        return Path(str(v)) if v is not None else v

    @field_validator("LOG_FILE", mode="after")
    @classmethod
    def _absolutize_log_file(cls, v: Path, info):
        return v if v.is_absolute() else Path.cwd() / v

    def ensure_dirs(self) -> None:
        """Create the log directory when file logging is on (idempotent)."""
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    # Convenience: Playwright launch options dict
    def playwright_launch_kwargs(self) -> dict:
        kwargs = {
            "headless": self.HEADLESS,
            "slow_mo": self.SLOW_MO,
        }
        if self.PROXY_SERVER:
            proxy = {"server": self.PROXY_SERVER}
            if self.PROXY_USERNAME and self.PROXY_PASSWORD:
                proxy["username"] = self.PROXY_USERNAME
                proxy["password"] = self.PROXY_PASSWORD
            kwargs["proxy"] = proxy
        return kwargs

    # Convenience: Playwright new_context kwargs
    def playwright_context_kwargs(self) -> dict:
        ctx = {"viewport": {"width": self.VIEWPORT_WIDTH, "height": self.VIEWPORT_HEIGHT}}
        if self.USER_AGENT:
            ctx["user_agent"] = self.USER_AGENT
        return ctx


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    s = Settings()
    s.ensure_dirs()
    return s
