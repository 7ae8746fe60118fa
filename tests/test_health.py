"""Tests for the health endpoint."""

from proposal_api.core.config import settings


async def test_health_reports_env_and_version(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "env": "test", "version": settings.VERSION}
