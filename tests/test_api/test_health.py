"""Tests for the /health endpoint."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    """GET /health should return healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["postgres"] == "ok"
    assert data["redis"] == "ok"


@pytest.mark.asyncio
async def test_health_reports_idle_broker_without_lifespan(client):
    """The test app never ran startup, so no broker connection is held."""
    response = await client.get("/health")
    assert response.json()["broker"] == "idle"
