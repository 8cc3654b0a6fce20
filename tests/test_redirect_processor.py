"""Redirect resolution tests."""

import datetime

import pytest

from app.background import BackgroundTaskRunner
from app.enums import ErrorKind
from app.models import utcnow
from app.redirect_processor import RedirectProcessor


@pytest.fixture
def processor(store, runner: BackgroundTaskRunner) -> RedirectProcessor:
    return RedirectProcessor(store, runner)


@pytest.mark.asyncio
async def test_resolve_returns_destination_unchanged(processor: RedirectProcessor, store) -> None:
    store.add("abc1234", "https://example.com/Path?q=Value&x=1#Frag")

    result = await processor.resolve("abc1234")

    assert result.ok
    assert result.value == "https://example.com/Path?q=Value&x=1#Frag"


@pytest.mark.asyncio
async def test_resolve_counts_click_in_background(processor: RedirectProcessor, store, runner) -> None:
    link = store.add("abc1234")

    await processor.resolve("abc1234")
    await runner.drain()

    assert link.clicks == 1
    assert link.last_accessed is not None


@pytest.mark.asyncio
async def test_unknown_code_is_not_found(processor: RedirectProcessor) -> None:
    result = await processor.resolve("missing")
    assert result.error.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_expired_link_is_gone_then_not_found(processor: RedirectProcessor, store, runner) -> None:
    store.add("old1234", expires_at=utcnow() - datetime.timedelta(seconds=1))

    first = await processor.resolve("old1234")
    second = await processor.resolve("old1234")
    await runner.drain()

    assert first.error.kind is ErrorKind.GONE
    assert second.error.kind is ErrorKind.NOT_FOUND
    assert store.links == {}
    assert "increment_clicks" not in store.calls


@pytest.mark.asyncio
async def test_increment_failure_does_not_fail_redirect(processor: RedirectProcessor, store, runner) -> None:
    link = store.add("abc1234")
    store.fail_on.add("increment_clicks")

    result = await processor.resolve("abc1234")
    await runner.drain()

    assert result.ok
    assert link.clicks == 0
    assert runner.pending == 0


@pytest.mark.asyncio
async def test_lookup_failure_is_persistence_failure(processor: RedirectProcessor, store) -> None:
    store.fail_on.add("find_by_code")

    result = await processor.resolve("abc1234")

    assert result.error.kind is ErrorKind.PERSISTENCE_FAILURE
