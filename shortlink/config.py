"""Configuration management for the shortlink service.

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
    from shortlink.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    length = settings.MIN_SHORT_ID_LENGTH

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables override defaults automatically.
- Out-of-range values (e.g. a zero-sized local cache) raise ValidationError.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# URL-safe base64 of a SHA-256 digest without padding.
LONG_ID_LENGTH = 43


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlink:shortlink@db:5432/shortlink"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_ECHO: bool = False

    # Redis (distributed cache tier)
    REDIS_URL: str = "redis://redis:6379/0"
    DISTRIBUTED_CACHE_KEY_PREFIX: str = "url:"

    # In-process cache tier
    LOCAL_CACHE_MAX_SIZE: int = Field(10000, ge=1)

    # Short ID generation
    MIN_SHORT_ID_LENGTH: int = Field(6, ge=1, le=LONG_ID_LENGTH)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
