"""Expiry sweeper tests."""

import asyncio
import datetime
from unittest.mock import AsyncMock

import pytest

from shortener.engine import ResolutionEngine
from shortener.errors import DependencyUnavailableError
from shortener.models import utcnow
from shortener.store import URLStore
from shortener.sweeper import ExpirySweeper


@pytest.mark.asyncio
async def test_sweep_once_purges_expired(engine: ResolutionEngine, store: URLStore) -> None:
    await store.insert("sweep01", "https://example.com", expires_at=utcnow() - datetime.timedelta(seconds=1))
    sweeper = ExpirySweeper(engine, interval_seconds=60)

    assert await sweeper.sweep_once() == ["sweep01"]
    assert await store.get_by_code("sweep01") is None


@pytest.mark.asyncio
async def test_disabled_sweeper_does_not_start(engine: ResolutionEngine) -> None:
    sweeper = ExpirySweeper(engine, interval_seconds=0)
    sweeper.start()
    assert sweeper._task is None
    await sweeper.stop()


@pytest.mark.asyncio
async def test_loop_survives_store_outage() -> None:
    engine = AsyncMock(spec=ResolutionEngine)
    engine.purge_expired.side_effect = [DependencyUnavailableError("store down"), ["late01"]] + [[]] * 1000
    sweeper = ExpirySweeper(engine, interval_seconds=0.01)

    sweeper.start()
    for _ in range(100):
        if engine.purge_expired.await_count >= 2:
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert engine.purge_expired.await_count >= 2


@pytest.mark.asyncio
async def test_loop_survives_unexpected_error() -> None:
    engine = AsyncMock(spec=ResolutionEngine)
    engine.purge_expired.side_effect = [RuntimeError("boom"), ["late02"]] + [[]] * 1000
    sweeper = ExpirySweeper(engine, interval_seconds=0.01)

    sweeper.start()
    for _ in range(100):
        if engine.purge_expired.await_count >= 2:
            break
        await asyncio.sleep(0.01)
    assert sweeper._task is not None and not sweeper._task.done()
    await sweeper.stop()

    assert engine.purge_expired.await_count >= 2
