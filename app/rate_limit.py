"""Fixed-window rate limit for link creation.

Each client IP gets one counter per minute::

    rate_limit:create:<ip>   INCR  ──► first hit sets EXPIRE 60

More than ``RATE_LIMIT_CREATE_PER_MINUTE`` hits inside the window is
rejected with 429. When Redis is unreachable the request is let through.
"""

import logging

import redis.asyncio as redis
from prometheus_client import Counter
from redis.exceptions import RedisError

__all__ = ["CreateRateLimiter", "WINDOW_SECONDS"]

WINDOW_SECONDS = 60

RATE_LIMITED_TOTAL = Counter(
    "link_shortener_rate_limited_total",
    "Link creation requests rejected by the rate limiter",
)


class CreateRateLimiter:
    def __init__(
        self,
        cache: redis.Redis,
        limit: int,
        key_prefix: str = "rate_limit:create",
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._cache = cache
        self._limit = limit
        self._key_prefix = key_prefix
        self._logger = logger or logging.getLogger("linkshortener")

    async def allow(self, client_id: str) -> bool:
        """Count one hit for ``client_id`` and report whether it is within the limit."""
        key = f"{self._key_prefix}:{client_id}"
        try:
            hits = await self._cache.incr(key)
            if hits == 1:
                await self._cache.expire(key, WINDOW_SECONDS)
        except RedisError as exc:
            self._logger.error(f"Rate limiter unavailable, allowing request: {exc}")
            return True

        if hits > self._limit:
            RATE_LIMITED_TOTAL.inc()
            self._logger.warning(f"Rate limit exceeded for {client_id}", extra={"client_ip": client_id})
            return False
        return True
