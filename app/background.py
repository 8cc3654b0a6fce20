"""Detached background work.

Redirects must not wait for their click increment, so the increment runs as
a separate asyncio task. The runner keeps a strong reference to every task
until it finishes, logs and drops failures, and can be drained at shutdown.

Task Lifecycle
==============
::
    submit(coro, name) ──► asyncio.create_task ──► _tasks (strong ref)
                                   │
                         done ─────┴───── failed
                           │                │
                     discard ref     log + counter, discard ref
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from prometheus_client import Counter

__all__ = ["BackgroundTaskRunner"]

BACKGROUND_TASK_FAILURES_TOTAL = Counter(
    "link_shortener_background_task_failures_total",
    "Background tasks that raised and were dropped",
    ["task"],
)


class BackgroundTaskRunner:
    """Fire-and-forget executor for work the caller must not await."""

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None):
        self._logger = logger or logging.getLogger("linkshortener")
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], name: str = "background") -> asyncio.Task:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            BACKGROUND_TASK_FAILURES_TOTAL.labels(task=name).inc()
            self._logger.error(f"Background task {name} failed: {exc}", extra={"task": name})

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every in-flight task; cancel the stragglers after ``timeout``."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self._logger.warning(f"Cancelled {len(pending)} background tasks at shutdown")
