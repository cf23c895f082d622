"""Database engine and session-factory construction for the durable store.

This module provides SQLAlchemy async engine setup, session factories,
and database lifecycle operations. PostgreSQL is the production backend;
SQLite (aiosqlite) is accepted for local runs and the test suite.

Flow Diagram — Database Lifecycle
=================================
::
    ┌─────────────┐
    │ ServiceManager│
    │ .initialize() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_engine│
    │ _from_settings│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ create_all   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ URLStore uses│
    │ session      │
    │ factory      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()   │
    │ (dispose)    │
    └─────────────┘

How to Use
===========
**Step 1 — Build the engine and session factory**::
    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)

**Step 2 — Initialize on startup**::
    await init_db(engine)  # Creates tables

**Step 3 — Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- No module-level engine; the owner of the engine passes it around.
- Connection pooling is configured for production workloads.
- Sessions never expire attributes on commit so returned rows stay readable.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine_from_settings():  Async engine for DATABASE_URL.
    create_session_factory():  async_sessionmaker bound to an engine.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import Settings

__all__ = ["Base", "create_engine_from_settings", "create_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    options: dict = {"echo": settings.APP_ENV == "development"}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return create_async_engine(settings.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Registers the models on Base.metadata before create_all.
    import shortener.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
