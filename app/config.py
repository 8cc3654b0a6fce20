"""Configuration management for the link shortener application.

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
    from app.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Derived values**::
    if user.email.lower() in settings.admin_emails:
        ...

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ``APP_ENV=production`` switches on the private/loopback host block for
  submitted URLs.
- ``ADMIN_EMAILS`` is a comma separated list, compared case-insensitively.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.enums import AppEnvironment


class Settings(BaseSettings):
    APP_NAME: str = "link-shortener"
    APP_ENV: AppEnvironment = AppEnvironment.DEVELOPMENT
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://linkshortener:linkshortener@db:5432/linkshortener"

    # Redis (rate limiting)
    REDIS_URL: str = "redis://redis:6379/0"

    # Short code generation
    SHORT_CODE_LENGTH: int = 7
    SHORT_CODE_MAX_ATTEMPTS: int = 5

    # Guest restrictions
    GUEST_EXPIRATION_DAYS: int = 7

    # Session cookie issued after the identity provider handshake
    SESSION_SECRET: str = "change-me"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_TTL_DAYS: int = 30
    SESSION_COOKIE_NAME: str = "session"

    ADMIN_EMAILS: str = ""

    RATE_LIMIT_CREATE_PER_MINUTE: int = 10
    RATE_LIMIT_KEY_PREFIX: str = "rate_limit:create"

    # Periodic removal of expired links, 0 disables the background sweeper
    CLEANUP_INTERVAL_SECONDS: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def admin_emails(self) -> set[str]:
        return {email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
