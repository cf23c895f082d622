"""SQLAlchemy ORM model for short-code mappings.

This module defines the durable record behind every short code: the
destination, click counter, timestamps and the optional owner context.

Data Model Layout
=================
::
    urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(10) UNIQUE, INDEXED)
    ├─ long_url (TEXT NOT NULL)
    ├─ clicks (INTEGER DEFAULT 0)
    ├─ created_at (TIMESTAMPTZ, INDEXED)
    ├─ expires_at (TIMESTAMPTZ NULL)
    ├─ user_ip (VARCHAR(45) NULL)
    └─ metadata (JSON NULL)

How to Use
===========
**Step 1 — Import**::
    from shortener.models import URLMapping

**Step 2 — Check logical expiry**::
    if mapping.is_expired():
        ...

Key Behaviours
===============
- short_code carries the unique constraint; it is the only serialization
  point for concurrent creates.
- created_at is stamped in UTC by the application, not the server, so
  every backend returns comparable values.
- SQLite hands datetimes back without tzinfo; as_utc() normalises them.

Classes:
    URLMapping:  A short code and everything known about it.
"""

import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["URLMapping", "as_utc", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


class URLMapping(Base):
    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True, nullable=False
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    # "metadata" is reserved on declarative classes.
    owner_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) < (now or utcnow())

    def __repr__(self) -> str:
        return f"<URLMapping(id={self.id}, short_code='{self.short_code}', clicks={self.clicks})>"
