"""Redis cache in front of the durable store.

Holds three independent key spaces per short code and degrades every
failure to a miss or a no-op, so a fully-down Redis only costs latency.

Key Layout
==========
::
    url:{code}     → destination string        (TTL = CACHE_TTL_SECONDS)
    meta:{code}    → CachedMetadata JSON        (TTL = CACHE_TTL_SECONDS)
    clicks:{code}  → integer click accumulator  (TTL set on first INCR)

Flow Diagram — Guarded Operation
================================
::
    ┌─────────────┐
    │ Redis call   │
    │ (wait_for)   │
    └──────┬──────┘
    OK?   │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ log +   │  │ return  │
│ metric, │  │ value   │
│ default │  │         │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Build a client and wrap it**::
    client = create_redis_client(settings)
    cache = URLCache(client, ttl_seconds=settings.CACHE_TTL_SECONDS)

**Step 2 — Read and write**::
    await cache.put_destination("abc1234", "https://example.com")
    destination = await cache.get_destination("abc1234")   # None on miss

**Step 3 — Cleanup on shutdown**::
    await close_redis(client)

Key Behaviours
===============
- No operation raises; failures return None/False and are logged at WARNING.
- Every call is bounded by CACHE_OP_TIMEOUT_SECONDS.
- A miss says nothing about existence; only the store is authoritative.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortener.config import DEFAULT_LOGGER_NAME, Settings
from shortener.enums import HealthStatus
from shortener.metrics import CACHE_ERRORS_TOTAL, REDIS_OPERATIONS_TOTAL
from shortener.schemas import CachedMetadata

__all__ = ["URLCache", "create_redis_client", "close_redis"]

T = TypeVar("T")

DESTINATION_PREFIX = "url"
METADATA_PREFIX = "meta"
CLICKS_PREFIX = "clicks"


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.CACHE_OP_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.CACHE_OP_TIMEOUT_SECONDS,
    )


async def close_redis(client: redis.Redis) -> None:
    await client.aclose()


class URLCache:
    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = 86400,
        op_timeout_seconds: float = 0.25,
        logger: logging.Logger | None = None,
    ):
        self._client = client
        self._ttl = ttl_seconds
        self._timeout = op_timeout_seconds
        self._logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)

    @classmethod
    def from_settings(cls, client: redis.Redis, settings: Settings, logger: logging.Logger | None = None) -> "URLCache":
        return cls(
            client,
            ttl_seconds=settings.CACHE_TTL_SECONDS,
            op_timeout_seconds=settings.CACHE_OP_TIMEOUT_SECONDS,
            logger=logger,
        )

    @staticmethod
    def destination_key(short_code: str) -> str:
        return f"{DESTINATION_PREFIX}:{short_code}"

    @staticmethod
    def metadata_key(short_code: str) -> str:
        return f"{METADATA_PREFIX}:{short_code}"

    @staticmethod
    def clicks_key(short_code: str) -> str:
        return f"{CLICKS_PREFIX}:{short_code}"

    async def _guard(self, operation: str, call: Awaitable[T], default: T) -> T:
        try:
            result = await asyncio.wait_for(call, timeout=self._timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation=operation).inc()
            self._logger.warning(f"Cache {operation} failed, degrading: {exc!r}")
            return default
        REDIS_OPERATIONS_TOTAL.inc()
        return result

    async def put_destination(self, short_code: str, destination: str) -> bool:
        stored = await self._guard(
            "put_destination",
            self._client.set(self.destination_key(short_code), destination, ex=self._ttl),
            False,
        )
        return bool(stored)

    async def get_destination(self, short_code: str) -> str | None:
        return await self._guard("get_destination", self._client.get(self.destination_key(short_code)), None)

    async def put_metadata(self, short_code: str, metadata: CachedMetadata) -> bool:
        stored = await self._guard(
            "put_metadata",
            self._client.set(self.metadata_key(short_code), metadata.model_dump_json(), ex=self._ttl),
            False,
        )
        return bool(stored)

    async def get_metadata(self, short_code: str) -> CachedMetadata | None:
        raw = await self._guard("get_metadata", self._client.get(self.metadata_key(short_code)), None)
        if raw is None:
            return None
        try:
            return CachedMetadata.model_validate_json(raw)
        except ValueError as exc:
            self._logger.warning(f"Cache metadata for {short_code} is unreadable: {exc}")
            return None

    async def increment_click_counter(self, short_code: str) -> int | None:
        key = self.clicks_key(short_code)
        count = await self._guard("increment_click_counter", self._client.incr(key), None)
        # TTL starts with the first increment
        if count == 1:
            await self._guard("expire_click_counter", self._client.expire(key, self._ttl), False)
        return count

    async def get_click_counter(self, short_code: str) -> int | None:
        raw = await self._guard("get_click_counter", self._client.get(self.clicks_key(short_code)), None)
        return int(raw) if raw is not None else None

    async def invalidate(self, short_code: str) -> bool:
        removed = await self._guard(
            "invalidate",
            self._client.delete(
                self.destination_key(short_code),
                self.metadata_key(short_code),
                self.clicks_key(short_code),
            ),
            None,
        )
        return removed is not None

    async def health(self) -> HealthStatus:
        pong = await self._guard("ping", self._client.ping(), False)
        return HealthStatus.HEALTHY if pong else HealthStatus.UNHEALTHY
