"""Background click recording: dual increment, isolation and back-pressure."""

from unittest.mock import AsyncMock

import pytest

from shortener.cache import URLCache
from shortener.click_recorder import ClickRecorder
from shortener.errors import DependencyUnavailableError
from shortener.store import URLStore


@pytest.mark.asyncio
async def test_record_increments_cache_and_store(store: URLStore, cache: URLCache) -> None:
    await store.insert("click01", "https://example.com")
    recorder = ClickRecorder(store, cache)

    for _ in range(3):
        assert recorder.record("click01") is True
    await recorder.drain()
    await recorder.stop()

    assert (await store.get_by_code("click01")).clicks == 3
    assert await cache.get_click_counter("click01") == 3


@pytest.mark.asyncio
async def test_store_failure_does_not_block_cache_increment(cache: URLCache) -> None:
    failing_store = AsyncMock(spec=URLStore)
    failing_store.increment_clicks.side_effect = DependencyUnavailableError("store down")
    recorder = ClickRecorder(failing_store, cache)

    recorder.record("click01")
    await recorder.drain()

    assert await cache.get_click_counter("click01") == 1
    assert recorder.running
    await recorder.stop()


@pytest.mark.asyncio
async def test_cache_failure_does_not_block_store_increment(store: URLStore) -> None:
    await store.insert("click02", "https://example.com")
    failing_cache = AsyncMock(spec=URLCache)
    failing_cache.increment_click_counter.side_effect = RuntimeError("unexpected")
    recorder = ClickRecorder(store, failing_cache)

    recorder.record("click02")
    await recorder.drain()
    await recorder.stop()

    assert (await store.get_by_code("click02")).clicks == 1


@pytest.mark.asyncio
async def test_full_queue_drops_clicks(store: URLStore, cache: URLCache) -> None:
    recorder = ClickRecorder(store, cache, max_queue_size=1)

    assert recorder.record("click03") is True
    # Workers have not run yet, so the single slot is still taken.
    assert recorder.record("click03") is False

    await recorder.stop()


@pytest.mark.asyncio
async def test_click_on_deleted_code_is_harmless(store: URLStore, cache: URLCache) -> None:
    recorder = ClickRecorder(store, cache)

    recorder.record("ghost01")
    await recorder.drain()
    await recorder.stop()

    assert await store.get_by_code("ghost01") is None
