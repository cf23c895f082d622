"""Short-code resolution engine - core business logic.

Orchestrates the code generator, the durable store and the Redis cache:
creates mappings, resolves codes cache-first, records clicks in the
background and keeps the cache consistent on delete and expiry.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    ResolutionEngine                         │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │ CodeGenerator   │  │ ClickRecorder   │  │ Expiry logic │ │
    │  │ • nanoid codes  │  │ • asyncio queue │  │ • lazy purge │ │
    │  │ • custom rules  │  │ • dual INCR     │  │ • sweep      │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                    │                    │
                ▼                    ▼                    ▼
    ┌─────────────────┐  ┌─────────────────┐
    │   URLStore      │  │    URLCache     │
    │ (authoritative) │  │ (subset, TTL)   │
    └─────────────────┘  └─────────────────┘

Request Flow Diagrams
=====================

Create Flow
-----------
::
    ┌─────────────┐
    │ Validate URL │
    │ & expiry     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Custom code? │──YES──▶ format check → live? Conflict : insert
    └──────┬──────┘
           │ NO
           ▼
    ┌─────────────┐
    │ generate +   │◀─┐
    │ insert       │  │ CodeConflictError
    └──────┬──────┘──┘ (max CODE_GENERATION_MAX_ATTEMPTS)
           ▼
    ┌─────────────┐
    │ Cache url:/  │
    │ meta: (best  │
    │ effort)      │
    └─────────────┘

Resolve Flow
------------
::
    ┌─────────────┐
    │ cache GET    │──HIT──▶ record click → return destination
    └──────┬──────┘
           │ MISS
           ▼
    ┌─────────────┐
    │ store GET    │──NONE──▶ NotFoundError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ expired?     │──YES──▶ delete store + invalidate cache → ExpiredError
    └──────┬──────┘
           │ NO
           ▼
    record click → repopulate url:{code} → return destination

Key Behaviours
===============
- The store is ground truth; a cache miss never means "does not exist".
- The cache-hit path does not re-check expires_at. A mapping that expired
  while cached keeps redirecting until its cache entry's TTL lapses.
- Clicks are enqueued, never awaited, on the resolve path.
- Cache failures never reach the caller; store failures surface as
  DependencyUnavailableError except inside click recording.

Usage Examples
=============
```python
ctx = EngineContext(store=store, cache=cache, settings=settings, logger=logger)
engine = ResolutionEngine.from_context(ctx)
engine.start()

mapping = await engine.create("https://example.com/a", expires_in_seconds=86400)
destination = await engine.resolve(mapping.short_code)
await engine.close()
```
"""

import datetime
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import validators

from shortener.cache import URLCache
from shortener.click_recorder import ClickRecorder
from shortener.code_generator import CodeGenerator
from shortener.config import DEFAULT_LOGGER_NAME, Settings
from shortener.enums import HealthStatus, LookupPath, RequestStatus
from shortener.errors import (
    CodeConflictError,
    ConflictError,
    DependencyUnavailableError,
    ExpiredError,
    InvalidInputError,
    NotFoundError,
)
from shortener.metrics import (
    EXPIRED_PURGED_TOTAL,
    URL_CREATION_REQUESTS_TOTAL,
    URL_DELETE_REQUESTS_TOTAL,
    URL_LOOKUP_DURATION,
    URL_LOOKUP_REQUESTS_TOTAL,
)
from shortener.models import URLMapping, utcnow
from shortener.schemas import CachedMetadata, URLAnalytics
from shortener.store import URLStore

__all__ = ["EngineContext", "MappingPage", "ResolutionEngine"]


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class EngineContext:
    """Everything the engine needs, injected once at construction.

    Attributes:
        store: Durable store (authoritative)
        cache: Redis cache wrapper (best effort)
        settings: Application settings
        logger: Logger used by the engine and its click workers
        generator: Optional code generator; built from settings when omitted
    """

    store: URLStore
    cache: URLCache
    settings: Settings
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(DEFAULT_LOGGER_NAME))
    generator: CodeGenerator | None = None


@dataclass
class MappingPage:
    items: list[URLMapping]
    total: int
    limit: int
    offset: int


# ============================================================================
# CORE ENGINE CLASS
# ============================================================================


class ResolutionEngine:
    """Creates, resolves and deletes short-code mappings.

    Example:
        >>> engine = ResolutionEngine.from_context(ctx)
        >>> mapping = await engine.create("https://example.com")
        >>> await engine.resolve(mapping.short_code)
        'https://example.com'
    """

    def __init__(self, ctx: EngineContext):
        self._store = ctx.store
        self._cache = ctx.cache
        self._settings = ctx.settings
        self._logger = ctx.logger
        self._generator = ctx.generator or CodeGenerator.from_settings(ctx.settings)
        self._clicks = ClickRecorder(
            ctx.store,
            ctx.cache,
            logger=ctx.logger,
            max_queue_size=ctx.settings.CLICK_QUEUE_MAX_SIZE,
            worker_count=ctx.settings.CLICK_WORKER_COUNT,
        )

    @classmethod
    def from_context(cls, ctx: EngineContext) -> "ResolutionEngine":
        return cls(ctx)

    @property
    def click_recorder(self) -> ClickRecorder:
        return self._clicks

    def start(self) -> None:
        self._clicks.start()

    async def close(self) -> None:
        await self._clicks.stop()

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(
        self,
        destination: str,
        custom_code: str | None = None,
        expires_in_seconds: int | None = None,
        *,
        user_ip: str | None = None,
        owner_metadata: dict[str, Any] | None = None,
    ) -> URLMapping:
        """Create a new mapping and warm the cache with it.

        Args:
            destination: Absolute URL to redirect to
            custom_code: Caller-chosen code; generated when omitted or empty
            expires_in_seconds: Lifetime from now; None means never expires
            user_ip: Origin of the request (informational)
            owner_metadata: Opaque JSON-able metadata (informational)

        Returns:
            URLMapping: The persisted mapping with clicks=0

        Raises:
            InvalidInputError: Malformed destination, custom code or lifetime
            ConflictError: Custom code is live, or no free generated code was found
            DependencyUnavailableError: The store could not be reached
        """
        try:
            self._validate_destination(destination)
            expires_at = self._compute_expiry(expires_in_seconds)

            if custom_code:
                mapping = await self._create_with_custom_code(
                    destination, custom_code, expires_at, user_ip, owner_metadata
                )
            else:
                mapping = await self._create_with_generated_code(destination, expires_at, user_ip, owner_metadata)
        except InvalidInputError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"URL creation rejected: {exc}")
            raise
        except ConflictError as exc:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"URL creation conflict: {exc}")
            raise
        except DependencyUnavailableError:
            URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise

        # Only persisted rows reach the cache.
        await self._cache_mapping(mapping)
        URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short code created: {mapping.short_code} -> {mapping.long_url}")
        return mapping

    async def resolve(self, short_code: str) -> str:
        """Resolve a short code to its destination and record the click.

        Raises:
            NotFoundError: The code does not exist (or was deleted)
            ExpiredError: The code existed but its lifetime has passed
            DependencyUnavailableError: Cache missed and the store is down
        """
        start_time = time.perf_counter()

        destination = await self._cache.get_destination(short_code)
        if destination is not None:
            self._clicks.record(short_code)
            self._observe_lookup(start_time, RequestStatus.SUCCESS, LookupPath.CACHE)
            self._logger.debug(f"Cache hit for {short_code}")
            return destination

        try:
            mapping = await self._store.get_by_code(short_code)
        except DependencyUnavailableError:
            self._observe_lookup(start_time, RequestStatus.ERROR, LookupPath.STORE)
            raise

        if mapping is None:
            self._observe_lookup(start_time, RequestStatus.NOT_FOUND, LookupPath.STORE)
            raise NotFoundError(f"Short code '{short_code}' not found", short_code)

        if mapping.is_expired():
            await self._discard_expired(short_code)
            self._observe_lookup(start_time, RequestStatus.EXPIRED, LookupPath.STORE)
            raise ExpiredError(f"Short code '{short_code}' has expired", short_code)

        self._clicks.record(short_code)
        await self._cache.put_destination(short_code, mapping.long_url)
        self._observe_lookup(start_time, RequestStatus.SUCCESS, LookupPath.STORE)
        self._logger.debug(f"Store hit and cached for {short_code}")
        return mapping.long_url

    async def delete(self, short_code: str) -> URLMapping:
        """Delete a mapping durably, then drop every cache entry for it.

        Raises:
            NotFoundError: Nothing to delete
            DependencyUnavailableError: The store could not be reached
        """
        mapping = await self._store.delete(short_code)
        if mapping is None:
            URL_DELETE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise NotFoundError(f"Short code '{short_code}' not found", short_code)

        await self._cache.invalidate(short_code)
        URL_DELETE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short code deleted: {short_code}")
        return mapping

    async def list_all(self, limit: int | None = None, offset: int = 0) -> MappingPage:
        """Page through mappings newest first, straight from the store."""
        if limit is None:
            limit = self._settings.LIST_DEFAULT_LIMIT
        limit = max(1, min(limit, self._settings.LIST_MAX_LIMIT))
        offset = max(0, offset)

        items = await self._store.list_mappings(limit, offset)
        total = await self._store.count()
        return MappingPage(items=items, total=total, limit=limit, offset=offset)

    async def get_analytics(self, short_code: str) -> URLAnalytics:
        """Durable click count and timestamps; the cache counter is never consulted."""
        mapping = await self._store.get_by_code(short_code)
        if mapping is None:
            raise NotFoundError(f"Short code '{short_code}' not found", short_code)
        return URLAnalytics.model_validate(mapping)

    async def cached_clicks(self, short_code: str) -> int | None:
        return await self._cache.get_click_counter(short_code)

    async def purge_expired(self) -> list[str]:
        """Delete every expired mapping and invalidate its cache entries."""
        codes = await self._store.purge_expired()
        for short_code in codes:
            await self._cache.invalidate(short_code)
        if codes:
            EXPIRED_PURGED_TOTAL.inc(len(codes))
            self._logger.info(f"Purged {len(codes)} expired short code(s)")
        return codes

    async def health(self) -> tuple[HealthStatus, HealthStatus]:
        """Return (database, cache) health."""
        try:
            await self._store.ping()
            db_status = HealthStatus.HEALTHY
        except DependencyUnavailableError:
            db_status = HealthStatus.UNHEALTHY
        cache_status = await self._cache.health()
        return db_status, cache_status

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _validate_destination(self, destination: str) -> None:
        if not isinstance(destination, str) or not destination or not validators.url(destination):
            raise InvalidInputError("Invalid URL provided")

    def _compute_expiry(self, expires_in_seconds: int | None) -> datetime.datetime | None:
        if expires_in_seconds is None:
            return None
        if isinstance(expires_in_seconds, bool) or not isinstance(expires_in_seconds, int) or expires_in_seconds <= 0:
            raise InvalidInputError("expires_in must be a positive number of seconds")
        return utcnow() + datetime.timedelta(seconds=expires_in_seconds)

    async def _create_with_custom_code(
        self,
        destination: str,
        custom_code: str,
        expires_at: datetime.datetime | None,
        user_ip: str | None,
        owner_metadata: dict[str, Any] | None,
    ) -> URLMapping:
        if not self._generator.validate_custom(custom_code):
            raise InvalidInputError(
                f"Custom code must be {self._generator.custom_min_length}-"
                f"{self._generator.custom_max_length} alphanumeric characters",
                custom_code,
            )

        existing = await self._store.get_by_code(custom_code)
        if existing is not None:
            if not existing.is_expired():
                raise ConflictError(f"Custom code '{custom_code}' is already in use", custom_code)
            await self._discard_expired(custom_code)

        # No retry: a lost race on a chosen code is the caller's conflict.
        return await self._store.insert(
            custom_code,
            destination,
            user_ip=user_ip,
            owner_metadata=owner_metadata,
            expires_at=expires_at,
        )

    async def _create_with_generated_code(
        self,
        destination: str,
        expires_at: datetime.datetime | None,
        user_ip: str | None,
        owner_metadata: dict[str, Any] | None,
    ) -> URLMapping:
        max_attempts = max(1, self._settings.CODE_GENERATION_MAX_ATTEMPTS)
        for attempt in range(1, max_attempts + 1):
            short_code = self._generator.generate()
            try:
                return await self._store.insert(
                    short_code,
                    destination,
                    user_ip=user_ip,
                    owner_metadata=owner_metadata,
                    expires_at=expires_at,
                )
            except CodeConflictError:
                self._logger.warning(f"Generated code collision on {short_code} (attempt {attempt}/{max_attempts})")

        raise ConflictError(f"Could not allocate a unique short code after {max_attempts} attempts")

    async def _cache_mapping(self, mapping: URLMapping) -> None:
        await self._cache.put_destination(mapping.short_code, mapping.long_url)
        await self._cache.put_metadata(mapping.short_code, CachedMetadata.model_validate(mapping))

    async def _discard_expired(self, short_code: str) -> None:
        try:
            deleted = await self._store.delete_if_expired(short_code)
        except DependencyUnavailableError as exc:
            # The next store-path read retries the deletion.
            self._logger.error(f"Could not delete expired code {short_code}: {exc}")
            await self._cache.invalidate(short_code)
            return
        if not deleted:
            # Already removed, or re-created as a live mapping since it was read.
            return
        await self._cache.invalidate(short_code)
        EXPIRED_PURGED_TOTAL.inc()
        self._logger.info(f"Expired short code removed: {short_code}")

    def _observe_lookup(self, start_time: float, status: RequestStatus, path: LookupPath) -> None:
        URL_LOOKUP_DURATION.observe(time.perf_counter() - start_time)
        URL_LOOKUP_REQUESTS_TOTAL.labels(status=status, path=path).inc()
