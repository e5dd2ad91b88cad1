"""
Health and readiness endpoint tests.
"""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient


async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_check(client: AsyncClient):
    """With the in-memory rate limiter only the database is checked."""
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": True}}


async def test_ready_check_database_down(client: AsyncClient):
    with patch("app.main.database_available", AsyncMock(return_value=False)):
        response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/listings" in data["endpoints"]


async def test_security_headers_on_pages(client: AsyncClient):
    response = await client.get("/listings")
    assert response.headers["X-Frame-Options"] == "DENY"
