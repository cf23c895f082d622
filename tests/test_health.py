"""Health endpoint tests."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from shortener.cache import URLCache
from shortener.config import Settings
from shortener.dependencies import ServiceManager
from shortener.enums import HealthStatus
from shortener.main import create_app
from shortener.sweeper import ExpirySweeper


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.HEALTHY.value


@pytest.mark.asyncio
async def test_health_and_redirect_with_cache_down(settings: Settings, down_redis: AsyncMock) -> None:
    services = ServiceManager(settings, cache_client=down_redis)
    await services.initialize()
    app = create_app(services)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        health = (await ac.get("/health")).json()
        assert health["status"] == HealthStatus.UNHEALTHY.value
        assert health["database"] == HealthStatus.HEALTHY.value
        assert health["cache"] == HealthStatus.UNHEALTHY.value

        created = await ac.post("/api/urls", json={"url": "https://www.example.com"})
        assert created.status_code == 201
        redirect = await ac.get(f"/{created.json()['short_code']}", follow_redirects=False)
        assert redirect.status_code == 307
        assert redirect.headers["location"] == "https://www.example.com"

    await services.cleanup()


def test_components_log_through_the_service_logger(settings: Settings) -> None:
    services = ServiceManager(settings, cache_client=AsyncMock())

    assert URLCache(AsyncMock())._logger is services.logger
    assert ExpirySweeper(AsyncMock(), interval_seconds=0).logger is services.logger
