"""Periodic removal of expired links.

Expired links are also removed lazily when accessed; the sweeper catches
the ones nobody visits again.

Sweeper Loop
============
::
    start() ──► create_task(_run)
                    │
                    ▼
              ┌───────────┐   failure: log, keep looping
              │ sweep     │◄──────────────┐
              └─────┬─────┘               │
                    ▼                     │
              sleep(interval) ────────────┘
    stop()  ──► cancel task, await it
"""

import asyncio
import logging

from prometheus_client import Counter

from app.models import utcnow
from app.store import LinkStore

__all__ = ["ExpiredLinkSweeper", "sweep_expired"]

SWEPT_LINKS_TOTAL = Counter(
    "link_shortener_swept_links_total",
    "Expired links deleted by the sweeper",
)


async def sweep_expired(store: LinkStore, logger: logging.Logger | logging.LoggerAdapter | None = None) -> int:
    """Delete every link whose expiration is in the past; return how many."""
    logger = logger or logging.getLogger("linkshortener")
    removed = await store.delete_expired(utcnow())
    if removed:
        SWEPT_LINKS_TOTAL.inc(removed)
        logger.info(f"Removed {removed} expired links")
    return removed


class ExpiredLinkSweeper:
    def __init__(
        self,
        store: LinkStore,
        interval_seconds: float,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._interval = interval_seconds
        self._logger = logger or logging.getLogger("linkshortener")
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._interval <= 0:
            self._logger.info("Expired link sweeper disabled")
            return
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="expired_link_sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await sweep_expired(self._store, self._logger)
            except Exception as exc:
                self._logger.error(f"Expired link sweep failed: {exc}")
            await asyncio.sleep(self._interval)
