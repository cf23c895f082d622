"""FastAPI application entry point for the URL shortener service.

This module configures the FastAPI application with middleware, lifecycle
management, error mapping and route registration.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │ create_app() │
    │ + Service-   │
    │   Manager    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ initialize()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ cleanup()   │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8000

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8000/api/urls \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "expires_in": 86400}'

Key Behaviours
===============
- ShortenerError subclasses map to their status_code with a JSON detail.
- Prometheus metrics are exposed at /metrics when METRICS_ENABLED is set.
- Shutdown drains queued clicks before closing Redis and the database.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.dependencies import ServiceManager
from shortener.errors import ShortenerError
from shortener.routes import router


def create_app(services: ServiceManager | None = None) -> FastAPI:
    services = services or ServiceManager()
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await services.initialize()
        yield
        await services.cleanup()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short-code creation, resolution and click analytics",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ShortenerError)
    async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
        if exc.status_code >= 500:
            services.logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            services.logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    if settings.METRICS_ENABLED:
        Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=False,
            should_respect_env_var=False,
        ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
