"""Simple API health tests without database fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from ticket_inventory.main import create_app


@pytest.mark.asyncio
async def test_api_health_endpoints():
    """Test the health endpoints against the configured database."""
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] == "ok"

        response = await client.get("/info")
        assert response.status_code == 200
        data = response.json()
        assert data["service"]
        assert data["hold_duration_ms"] == 300_000
        assert data["features"]["reserved_seating"] is True


@pytest.mark.asyncio
async def test_metrics_endpoint():
    """Test the metrics endpoint."""
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_openapi_docs_hidden_outside_development():
    """Docs are only mounted in development."""
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/docs")
        assert response.status_code == 404
