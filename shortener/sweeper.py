"""Periodic purge of expired mappings.

Resolution already deletes an expired mapping the moment it is read from
the store; the sweeper catches the ones nobody reads any more.
"""

import asyncio
import logging

from shortener.config import DEFAULT_LOGGER_NAME
from shortener.engine import ResolutionEngine

__all__ = ["ExpirySweeper"]


class ExpirySweeper:
    """Runs ResolutionEngine.purge_expired() every interval_seconds."""

    def __init__(self, engine: ResolutionEngine, interval_seconds: int, logger: logging.Logger | None = None):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self._task: asyncio.Task | None = None

    async def sweep_once(self) -> list[str]:
        codes = await self.engine.purge_expired()
        self.logger.debug(f"Expiry sweep removed {len(codes)} code(s)")
        return codes

    async def run_continuous(self) -> None:
        self.logger.info(f"Starting expiry sweep every {self.interval_seconds}s")

        while True:
            try:
                await self.sweep_once()
            except Exception as e:
                self.logger.error(f"Expiry sweep error: {e}")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.interval_seconds <= 0 or self._task is not None:
            return
        self._task = asyncio.create_task(self.run_continuous(), name="expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
