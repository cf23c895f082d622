"""Service wiring and FastAPI dependencies.

One ServiceManager instance owns every shared resource (Redis client,
SQLAlchemy engine, store, cache, resolution engine, sweeper). The app
factory creates it and keeps it on ``app.state``; there is no module-level
singleton, so tests can build as many isolated managers as they like.
"""

import logging

import redis.asyncio as redis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.cache import URLCache, close_redis, create_redis_client
from shortener.config import DEFAULT_LOGGER_NAME, Settings, get_settings
from shortener.database import close_db, create_engine_from_settings, create_session_factory, init_db
from shortener.engine import EngineContext, ResolutionEngine
from shortener.store import URLStore
from shortener.sweeper import ExpirySweeper

__all__ = ["ServiceManager", "get_services", "get_engine"]


class ServiceManager:
    """Owner of shared resources for one application instance."""

    def __init__(self, settings: Settings | None = None, cache_client: redis.Redis | None = None):
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self._cache_client_override = cache_client
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.db_engine: AsyncEngine = create_engine_from_settings(self.settings)
        await init_db(self.db_engine)
        self.cache_client = self._cache_client_override or create_redis_client(self.settings)

        self.store = URLStore(create_session_factory(self.db_engine), logger=self.logger)
        self.cache = URLCache.from_settings(self.cache_client, self.settings, logger=self.logger)
        self.engine = ResolutionEngine.from_context(
            EngineContext(store=self.store, cache=self.cache, settings=self.settings, logger=self.logger)
        )
        self.engine.start()
        self.sweeper = ExpirySweeper(self.engine, self.settings.EXPIRY_SWEEP_INTERVAL_SECONDS, logger=self.logger)
        self.sweeper.start()
        self._initialized = True
        self.logger.info(f"{self.settings.APP_NAME} services initialized")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger(DEFAULT_LOGGER_NAME)
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.sweeper.stop()
        await self.engine.close()
        if self._cache_client_override is None:
            await close_redis(self.cache_client)
        await close_db(self.db_engine)
        self._initialized = False


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_services(request: Request) -> ServiceManager:
    return request.app.state.services


def get_engine(request: Request) -> ResolutionEngine:
    return request.app.state.services.engine
