"""FastAPI route definitions for the URL shortener REST API.

Routes only shape JSON; every rule lives in ResolutionEngine and every
engine error is turned into a status code by the handler in main.py.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /api/urls
        ├─ URLCreate (request body)
        └─ URLResponse (201) or 409/422/503

    GET    /api/urls?limit&offset
        └─ URLListResponse (200)

    GET    /api/urls/:short_code/analytics
        └─ URLAnalytics (200) or 404

    DELETE /api/urls/:short_code
        └─ URLResponse (200) or 404

    GET    /:short_code
        └─ 307 Redirect, 404 (missing) or 410 (expired)

Key Behaviours
===============
- The redirect route is registered last so it never shadows /api or /health.
- 307 redirects preserve the HTTP method.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from shortener.dependencies import ServiceManager, get_engine, get_services
from shortener.engine import ResolutionEngine
from shortener.enums import HealthStatus
from shortener.schemas import HealthResponse, URLAnalytics, URLCreate, URLListResponse, URLResponse

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(services: ServiceManager = Depends(get_services)) -> HealthResponse:
    db_status, cache_status = await services.engine.health()
    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    services.logger.info(f"Health check completed: {status.value}")
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/urls", response_model=URLResponse, status_code=201, tags=["urls"])
async def create_url(
    payload: URLCreate,
    request: Request,
    services: ServiceManager = Depends(get_services),
    engine: ResolutionEngine = Depends(get_engine),
) -> URLResponse:
    mapping = await engine.create(
        payload.url,
        payload.custom_code,
        payload.expires_in,
        user_ip=request.client.host if request.client else None,
        owner_metadata=payload.metadata,
    )
    return URLResponse.from_mapping(mapping, services.settings.BASE_URL)


@router.get("/api/urls", response_model=URLListResponse, tags=["urls"])
async def list_urls(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    services: ServiceManager = Depends(get_services),
    engine: ResolutionEngine = Depends(get_engine),
) -> URLListResponse:
    page = await engine.list_all(limit, offset)
    return URLListResponse(
        urls=[URLResponse.from_mapping(mapping, services.settings.BASE_URL) for mapping in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/api/urls/{short_code}/analytics", response_model=URLAnalytics, tags=["urls"])
async def get_analytics(short_code: str, engine: ResolutionEngine = Depends(get_engine)) -> URLAnalytics:
    return await engine.get_analytics(short_code)


@router.delete("/api/urls/{short_code}", response_model=URLResponse, tags=["urls"])
async def delete_url(
    short_code: str,
    services: ServiceManager = Depends(get_services),
    engine: ResolutionEngine = Depends(get_engine),
) -> URLResponse:
    mapping = await engine.delete(short_code)
    return URLResponse.from_mapping(mapping, services.settings.BASE_URL)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(short_code: str, engine: ResolutionEngine = Depends(get_engine)) -> RedirectResponse:
    destination = await engine.resolve(short_code)
    return RedirectResponse(url=destination, status_code=307)
