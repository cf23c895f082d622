"""Shared pytest fixtures for store, cache, engine and API tests.

The durable store runs on SQLite (aiosqlite, one file per test) and the
cache on an isolated fakeredis server, so no external services are needed.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import fakeredis
import pytest
import pytest_asyncio
import redis.asyncio as redis
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.cache import URLCache
from shortener.config import Settings
from shortener.database import close_db, create_engine_from_settings, create_session_factory, init_db
from shortener.dependencies import ServiceManager
from shortener.engine import EngineContext, ResolutionEngine
from shortener.main import create_app
from shortener.store import URLStore

REDIS_COMMANDS = ("get", "set", "incr", "expire", "delete", "ping")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        BASE_URL="http://sho.rt",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortener.db'}",
        CACHE_OP_TIMEOUT_SECONDS=0.5,
        EXPIRY_SWEEP_INTERVAL_SECONDS=0,
        METRICS_ENABLED=False,
        LIST_MAX_LIMIT=20,
    )


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    client = fake_aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def down_redis() -> AsyncMock:
    """A Redis client whose every command fails as if the server were gone."""
    client = AsyncMock()
    for name in REDIS_COMMANDS:
        setattr(client, name, AsyncMock(side_effect=RedisConnectionError("Redis is down")))
    return client


@pytest_asyncio.fixture
async def db_engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_from_settings(settings)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def store(db_engine: AsyncEngine) -> URLStore:
    return URLStore(create_session_factory(db_engine))


@pytest.fixture
def cache(redis_client: redis.Redis, settings: Settings) -> URLCache:
    return URLCache.from_settings(redis_client, settings)


@pytest_asyncio.fixture
async def engine(store: URLStore, cache: URLCache, settings: Settings) -> AsyncGenerator[ResolutionEngine, None]:
    resolution_engine = ResolutionEngine.from_context(EngineContext(store=store, cache=cache, settings=settings))
    resolution_engine.start()
    yield resolution_engine
    await resolution_engine.close()


@pytest_asyncio.fixture
async def services(settings: Settings, redis_client: redis.Redis) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager(settings, cache_client=redis_client)
    await manager.initialize()
    yield manager
    await manager.cleanup()


@pytest_asyncio.fixture
async def client(services: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
