"""Health, readiness and version endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_root(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "nexus-profile"


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    """Liveness returns 200 without touching dependencies."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_ready_without_redis(client: AsyncClient) -> None:
    """Readiness reports the database and tolerates a missing Redis."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "not_configured"}


@pytest.mark.asyncio
async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": "0.1.0", "environment": "development"}
