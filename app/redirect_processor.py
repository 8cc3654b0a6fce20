"""Short-code resolution for redirects.

Redirect Flow
=============
::
    ┌─────────────┐
    │  GET /:code │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Store lookup │ ── missing ──► NOT_FOUND
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Expired?     │ ── yes ──► delete record ──► GONE
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Submit click │  (detached; failures logged and dropped)
    │ increment    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ 307 Redirect │
    │ to original  │
    └─────────────┘

Key Behaviours
===============
- The destination is returned exactly as stored.
- An expired link is deleted on first access, so it resolves as GONE once
  and as NOT_FOUND afterwards.
- The redirect never waits for the click increment.
"""

import logging

from prometheus_client import Counter

from app.background import BackgroundTaskRunner
from app.enums import ErrorKind, RedirectOutcome
from app.models import utcnow
from app.results import Result
from app.store import LinkStore, PersistenceError

__all__ = ["RedirectProcessor"]

REDIRECTS_TOTAL = Counter(
    "link_shortener_redirects_total",
    "Short-code resolutions by outcome",
    ["outcome"],
)


class RedirectProcessor:
    def __init__(
        self,
        store: LinkStore,
        runner: BackgroundTaskRunner,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._runner = runner
        self._logger = logger or logging.getLogger("linkshortener")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "RedirectProcessor":
        return cls(ctx.store, ctx.runner, ctx.logger)

    async def resolve(self, short_code: str) -> Result[str]:
        """Return the destination URL for ``short_code``.

        Returns:
            Result[str]: the stored URL, or NOT_FOUND, GONE or
            PERSISTENCE_FAILURE.
        """
        try:
            link = await self._store.find_by_code(short_code)
            if link is None:
                REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.NOT_FOUND).inc()
                return Result.failure(ErrorKind.NOT_FOUND, "Short URL not found")

            if link.is_expired(utcnow()):
                await self._store.delete_by_id(link.id)
                REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.GONE).inc()
                self._logger.info(f"Expired link removed on access: {short_code}")
                return Result.failure(ErrorKind.GONE, "This link has expired")
        except PersistenceError as exc:
            REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.ERROR).inc()
            self._logger.error(f"Redirect lookup failed for {short_code}: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to resolve short URL")

        self._runner.submit(self._store.increment_clicks(link.id), name="increment_clicks")
        REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.REDIRECTED).inc()
        return Result.success(link.original_url)
