"""Background click recording, decoupled from the redirect path.

Resolution hands a short code to ``ClickRecorder.record()`` and returns
immediately. Worker tasks pull codes off a bounded asyncio queue and
apply two independent increments: the Redis accumulator and the durable
counter. Either may fail without touching the other.

Flow Diagram — Click Job
========================
::
    ┌─────────────┐
    │ resolve()    │
    │ record(code) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ queue.put_   │──FULL──▶ drop + metric
    │ nowait       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ worker task  │
    └──────┬──────┘
    ┌──────┴──────┐
    ▼             ▼
┌─────────┐  ┌─────────┐
│ cache   │  │ store   │
│ INCR    │  │ UPDATE  │
└─────────┘  └─────────┘
  (gather, failures logged per target)

Key Behaviours
===============
- Counting is best effort: a full queue, a crash or a store outage loses clicks.
- drain() waits for every queued job; tests use it to let counts settle.
"""

import asyncio
import logging

from shortener.cache import URLCache
from shortener.config import DEFAULT_LOGGER_NAME
from shortener.metrics import CLICK_JOBS_DROPPED_TOTAL, CLICK_RECORD_FAILURES_TOTAL
from shortener.store import URLStore

__all__ = ["ClickRecorder"]


class ClickRecorder:
    def __init__(
        self,
        store: URLStore,
        cache: URLCache,
        logger: logging.Logger | None = None,
        max_queue_size: int = 10000,
        worker_count: int = 1,
    ):
        self._store = store
        self._cache = cache
        self._logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)
        self._worker_count = max(1, worker_count)
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def start(self) -> None:
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"click-recorder-{index}")
            for index in range(self._worker_count)
        ]
        self._logger.info(f"Click recorder started with {self._worker_count} worker(s)")

    def record(self, short_code: str) -> bool:
        """Enqueue a click for short_code; returns False when the job was dropped."""
        self.start()
        try:
            self._queue.put_nowait(short_code)
        except asyncio.QueueFull:
            CLICK_JOBS_DROPPED_TOTAL.inc()
            self._logger.warning(f"Click queue full, dropping click for {short_code}")
            return False
        return True

    async def drain(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        if self.running:
            await self.drain()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    async def _worker(self, index: int) -> None:
        while True:
            short_code = await self._queue.get()
            try:
                await self._apply(short_code)
            finally:
                self._queue.task_done()

    async def _apply(self, short_code: str) -> None:
        cache_result, store_result = await asyncio.gather(
            self._cache.increment_click_counter(short_code),
            self._store.increment_clicks(short_code),
            return_exceptions=True,
        )
        if isinstance(cache_result, Exception):
            CLICK_RECORD_FAILURES_TOTAL.labels(target="cache").inc()
            self._logger.error(f"Cache click increment failed for {short_code}: {cache_result!r}")
        if isinstance(store_result, Exception):
            CLICK_RECORD_FAILURES_TOTAL.labels(target="store").inc()
            self._logger.error(f"Store click increment failed for {short_code}: {store_result!r}")
        elif store_result is None:
            self._logger.debug(f"Click for {short_code} hit no durable row (deleted meanwhile)")
