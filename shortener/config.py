"""Configuration management for the short-code resolution service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Hand them to the engine**::
    ctx = EngineContext(store=store, cache=cache, settings=settings, logger=logger)

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- Core modules never call get_settings() themselves; the instance travels
  inside EngineContext so tests can build their own Settings(...).

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings", "DEFAULT_LOGGER_NAME"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOGGER_NAME = "url-shortener"


class Settings(BaseSettings):
    APP_NAME: str = DEFAULT_LOGGER_NAME
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Durable store
    DATABASE_URL: str = "postgresql+asyncpg://urlshortener:urlshortener@db:5432/urlshortener"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis cache
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_TTL_SECONDS: int = 86400
    CACHE_OP_TIMEOUT_SECONDS: float = 0.25

    # Short code policy
    SHORT_CODE_LENGTH: int = 7
    CUSTOM_CODE_MIN_LENGTH: int = 4
    CUSTOM_CODE_MAX_LENGTH: int = 10
    CODE_GENERATION_MAX_ATTEMPTS: int = 5

    # Click recording (background queue)
    CLICK_QUEUE_MAX_SIZE: int = 10000
    CLICK_WORKER_COUNT: int = 1

    # Expired mapping sweeper; 0 disables the background loop
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 3600

    # Listing
    LIST_DEFAULT_LIMIT: int = 50
    LIST_MAX_LIMIT: int = 500

    METRICS_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
