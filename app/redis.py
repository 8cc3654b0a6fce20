"""Redis client management for the link shortener.

Redis only backs the per-client creation rate limit; link data never
lives there.

Flow Diagram — Client Lifecycle
===============================
::
    ┌─────────────┐
    │ get_redis()  │
    └──────┬──────┘
    EXISTS?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ client  │  │ existing│
└─────────┘  └─────────┘

Key Behaviours
===============
- The client is created lazily on first access and reused afterwards.
- ``close_redis()`` runs at application shutdown.
- UTF-8 encoding with decode_responses for string operations.
"""

import redis.asyncio as redis

from app.config import get_settings

__all__ = ["close_redis", "get_redis"]

settings = get_settings()

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
