"""Health check endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_check(anon_client):
    response = await anon_client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "reportflow-api"
    assert "X-Trace-Id" in response.headers


@pytest.mark.asyncio
async def test_readiness_checks_database(anon_client):
    response = await anon_client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "disabled"}


@pytest.mark.asyncio
async def test_trace_id_is_echoed(anon_client):
    response = await anon_client.get("/api/v1/health/live", headers={"X-Trace-Id": "trc_fixed123"})
    assert response.headers["X-Trace-Id"] == "trc_fixed123"
