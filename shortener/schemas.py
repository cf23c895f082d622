"""Pydantic schemas for the HTTP adapter and the Redis metadata payload.

Schema Hierarchy
=================
::
    URLCreate (Input)
    ├─ url: str
    ├─ custom_code: str | None
    ├─ expires_in: int | None (seconds)
    └─ metadata: dict | None

    URLResponse (Output)
    ├─ id, short_code, short_url, long_url
    ├─ clicks: int
    ├─ created_at: datetime
    └─ expires_at: datetime | None

    URLListResponse (Output)
    ├─ urls: list[URLResponse]
    └─ total, limit, offset

    URLAnalytics (Output, also returned by the engine)
    └─ short_code, long_url, clicks, created_at, expires_at

    CachedMetadata (Redis meta:{code})
    └─ id, created_at, expires_at

    HealthResponse (Output)
    └─ status, database, cache

Key Behaviours
===============
- URL and custom code rules live in the engine, not here, so every
  caller gets the same InvalidInputError regardless of entry point.
- All models read from ORM attributes (from_attributes).
"""

import datetime
from typing import Any

from pydantic import BaseModel, Field

from shortener.enums import HealthStatus

__all__ = [
    "URLCreate",
    "URLResponse",
    "URLListResponse",
    "URLAnalytics",
    "CachedMetadata",
    "HealthResponse",
]


class URLCreate(BaseModel):
    url: str
    custom_code: str | None = None
    expires_in: int | None = Field(None, description="Lifetime in seconds; omitted means never expires.")
    metadata: dict[str, Any] | None = None


class URLResponse(BaseModel):
    id: int
    short_code: str
    short_url: str
    long_url: str
    clicks: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_mapping(cls, mapping, base_url: str) -> "URLResponse":
        return cls(
            id=mapping.id,
            short_code=mapping.short_code,
            short_url=f"{base_url}/{mapping.short_code}",
            long_url=mapping.long_url,
            clicks=mapping.clicks,
            created_at=mapping.created_at,
            expires_at=mapping.expires_at,
        )


class URLListResponse(BaseModel):
    urls: list[URLResponse]
    total: int
    limit: int
    offset: int


class URLAnalytics(BaseModel):
    short_code: str
    long_url: str
    clicks: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}


class CachedMetadata(BaseModel):
    """Redis cache payload stored next to the destination entry."""

    id: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
