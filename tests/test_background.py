"""Background task runner and expired-link sweeper tests."""

import asyncio
import datetime

import pytest

from app.background import BackgroundTaskRunner
from app.models import utcnow
from app.sweeper import ExpiredLinkSweeper, sweep_expired


@pytest.mark.asyncio
async def test_submitted_work_runs_without_being_awaited(runner: BackgroundTaskRunner) -> None:
    done = asyncio.Event()

    async def work() -> None:
        done.set()

    runner.submit(work(), name="work")
    assert runner.pending == 1

    await runner.drain()

    assert done.is_set()
    assert runner.pending == 0


@pytest.mark.asyncio
async def test_failures_are_logged_and_dropped(runner: BackgroundTaskRunner, caplog) -> None:
    async def broken() -> None:
        raise RuntimeError("boom")

    task = runner.submit(broken(), name="broken")
    await runner.drain()

    assert task.exception() is None
    assert "Background task broken failed: boom" in caplog.text


@pytest.mark.asyncio
async def test_drain_cancels_stragglers(runner: BackgroundTaskRunner) -> None:
    task = runner.submit(asyncio.sleep(60), name="slow")

    await runner.drain(timeout=0.01)

    assert task.cancelled()
    assert runner.pending == 0


@pytest.mark.asyncio
async def test_sweep_expired_removes_past_links(store) -> None:
    store.add("old0001", expires_at=utcnow() - datetime.timedelta(days=1))
    store.add("new0001", expires_at=utcnow() + datetime.timedelta(days=1))
    store.add("never01")

    removed = await sweep_expired(store)

    assert removed == 1
    assert {link.short_code for link in store.links.values()} == {"new0001", "never01"}


@pytest.mark.asyncio
async def test_sweeper_runs_periodically_and_survives_failures(store) -> None:
    store.fail_on.add("delete_expired")
    sweeper = ExpiredLinkSweeper(store, interval_seconds=1)

    sweeper.start()
    await asyncio.sleep(0.05)
    assert sweeper.running
    await sweeper.stop()

    assert store.calls.count("delete_expired") >= 1
    assert not sweeper.running


@pytest.mark.asyncio
async def test_sweeper_disabled_with_zero_interval(store) -> None:
    sweeper = ExpiredLinkSweeper(store, interval_seconds=0)

    sweeper.start()

    assert not sweeper.running
    await sweeper.stop()


@pytest.mark.asyncio
async def test_sweeper_keeps_running_after_unexpected_error(store, caplog) -> None:
    attempts = 0

    async def broken_delete_expired(now: datetime.datetime) -> int:
        nonlocal attempts
        attempts += 1
        raise RuntimeError("connection reset")

    store.delete_expired = broken_delete_expired
    sweeper = ExpiredLinkSweeper(store, interval_seconds=0.01)

    sweeper.start()
    await asyncio.sleep(0.1)
    assert sweeper.running
    await sweeper.stop()

    assert attempts >= 2
    assert "Expired link sweep failed: connection reset" in caplog.text
