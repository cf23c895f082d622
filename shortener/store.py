"""Durable store for short-code mappings over SQLAlchemy async sessions.

The store is the authoritative record. Every public method opens its own
session, so each operation is independently atomic; nothing here spans
more than one statement-group or holds state between calls.

Flow Diagram — insert()
=======================
::
    ┌─────────────┐
    │ add row      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ commit       │
    └──────┬──────┘
    UNIQUE OK?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ rollback│  │ return  │
│ raise   │  │ mapping │
│ Conflict│  │         │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Build from a session factory**::
    store = URLStore(create_session_factory(engine))

**Step 2 — Read and write**::
    mapping = await store.insert("abc1234", "https://example.com")
    clicks = await store.increment_clicks("abc1234")
    deleted = await store.delete("abc1234")

Key Behaviours
===============
- insert() never overwrites: a duplicate code raises CodeConflictError.
- Lookups return None for a missing code instead of raising.
- Driver/connection failures surface as DependencyUnavailableError.
"""

import datetime
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.config import DEFAULT_LOGGER_NAME
from shortener.errors import CodeConflictError, DependencyUnavailableError
from shortener.metrics import DATABASE_READS_TOTAL, DATABASE_WRITES_TOTAL
from shortener.models import URLMapping, utcnow

__all__ = ["URLStore"]


class URLStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], logger: logging.Logger | None = None):
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            self._logger.error(f"Store {operation} failed: {exc}")
            raise DependencyUnavailableError(f"Durable store unavailable during {operation}") from exc

    async def insert(
        self,
        short_code: str,
        long_url: str,
        *,
        user_ip: str | None = None,
        owner_metadata: dict[str, Any] | None = None,
        expires_at: datetime.datetime | None = None,
    ) -> URLMapping:
        async with self._session("insert") as session:
            mapping = URLMapping(
                short_code=short_code,
                long_url=long_url,
                clicks=0,
                created_at=utcnow(),
                expires_at=expires_at,
                user_ip=user_ip,
                owner_metadata=owner_metadata,
            )
            session.add(mapping)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise CodeConflictError(f"Short code '{short_code}' already exists", short_code) from exc
            DATABASE_WRITES_TOTAL.inc()
            return mapping

    async def get_by_code(self, short_code: str) -> URLMapping | None:
        async with self._session("get_by_code") as session:
            result = await session.execute(select(URLMapping).where(URLMapping.short_code == short_code))
            DATABASE_READS_TOTAL.inc()
            return result.scalar_one_or_none()

    async def increment_clicks(self, short_code: str) -> int | None:
        """Atomically add one click; returns the new count or None if the code is gone."""
        async with self._session("increment_clicks") as session:
            result = await session.execute(
                update(URLMapping)
                .where(URLMapping.short_code == short_code)
                .values(clicks=URLMapping.clicks + 1)
                .returning(URLMapping.clicks)
                .execution_options(synchronize_session=False)
            )
            new_count = result.scalar_one_or_none()
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()
            return new_count

    async def delete(self, short_code: str) -> URLMapping | None:
        """Delete in one statement; only one of several concurrent callers gets the row."""
        async with self._session("delete") as session:
            result = await session.execute(
                delete(URLMapping)
                .where(URLMapping.short_code == short_code)
                .returning(URLMapping)
                .execution_options(synchronize_session=False)
            )
            mapping = result.scalar_one_or_none()
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()
            return mapping

    async def delete_if_expired(self, short_code: str, now: datetime.datetime | None = None) -> bool:
        """Delete the mapping only while it is still expired; a re-created live row survives."""
        cutoff = now or utcnow()
        async with self._session("delete_if_expired") as session:
            result = await session.execute(
                delete(URLMapping)
                .where(
                    URLMapping.short_code == short_code,
                    URLMapping.expires_at.is_not(None),
                    URLMapping.expires_at < cutoff,
                )
                .returning(URLMapping.id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.scalar_one_or_none() is not None
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()
            return deleted

    async def list_mappings(self, limit: int, offset: int) -> list[URLMapping]:
        async with self._session("list") as session:
            result = await session.execute(
                select(URLMapping)
                .order_by(URLMapping.created_at.desc(), URLMapping.id.desc())
                .limit(limit)
                .offset(offset)
            )
            DATABASE_READS_TOTAL.inc()
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self._session("count") as session:
            result = await session.execute(select(func.count()).select_from(URLMapping))
            DATABASE_READS_TOTAL.inc()
            return int(result.scalar_one())

    async def purge_expired(self, now: datetime.datetime | None = None) -> list[str]:
        """Delete every mapping whose expiry has passed; returns the purged codes."""
        cutoff = now or utcnow()
        async with self._session("purge_expired") as session:
            result = await session.execute(
                delete(URLMapping)
                .where(
                    URLMapping.expires_at.is_not(None),
                    URLMapping.expires_at < cutoff,
                )
                .returning(URLMapping.short_code)
                .execution_options(synchronize_session=False)
            )
            codes = list(result.scalars().all())
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()
            return codes

    async def ping(self) -> None:
        async with self._session("ping") as session:
            await session.execute(text("SELECT 1"))
