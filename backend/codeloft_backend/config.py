"""Application configuration and settings management."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the Codeloft backend."""

    model_config = SettingsConfigDict(
        env_prefix="CODELOFT_", env_file=".env", extra="ignore"
    )

    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    store_connect_timeout: float = 10.0
    store_max_retries: int = 10
    store_backoff_base: float = 0.1
    store_backoff_cap: float = 3.0
    lock_timeout: float = 30.0

    default_language: str = "javascript"
    default_theme: str = "dark"
    default_author: str = "codeloft"
    log_limit: int = 10
    search_limit: int = 20


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
