"""Runtime settings for the short-link service.

Values come from environment variables (exact, case-sensitive names) or a
local `.env` file, and are loaded once per process by `get_settings()`.

Settings Groups
===============
::
    service     APP_NAME, APP_ENV, LOG_LEVEL, BASE_URL
    store       DATABASE_URL, DATABASE_ECHO, STORE_TIMEOUT_SECONDS
    slugs       SLUG_CACHE_MAX_SIZE, SLUG_CACHE_SWEEP_INTERVAL_SECONDS
    identity    JWT_SECRET, JWT_ALGORITHM

Example::
    from shortlinks.config import get_settings

    base_url = get_settings().require_base_url()

BASE_URL may be absent when settings load; `require_base_url()` is the
check that stops the service from starting or serving without it. JWT
settings only verify caller tokens; tokens are issued elsewhere.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from shortlinks.errors import ConfigurationError


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Public prefix for short links, e.g. "https://sho.rt"
    BASE_URL: str | None = None

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"
    DATABASE_ECHO: bool = False

    # Slug recency cache
    SLUG_CACHE_MAX_SIZE: int = 10_000
    SLUG_CACHE_SWEEP_INTERVAL_SECONDS: float = 60.0

    # Deadline for each service operation (None disables it)
    STORE_TIMEOUT_SECONDS: float | None = None

    # Caller identity tokens
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    def require_base_url(self) -> str:
        if not self.BASE_URL or not self.BASE_URL.strip():
            raise ConfigurationError("BASE_URL is not configured")
        return self.BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
