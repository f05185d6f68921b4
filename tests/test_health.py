"""Tests for GET /api/health and the API root."""
import pytest
from httpx import AsyncClient

from app.services.tortoise_llm import TortoiseLLMService


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["database"] == "ok"
    # No API key in tests: templates only, still healthy
    assert data["llm"] == "offline"
    assert data["status"] == "healthy"
    assert "X-Process-Time" in resp.headers


@pytest.mark.asyncio
async def test_health_degraded_when_llm_unreachable(client: AsyncClient, monkeypatch):
    async def _down(self):
        return False

    monkeypatch.setattr(TortoiseLLMService, "enabled", property(lambda self: True))
    monkeypatch.setattr(TortoiseLLMService, "check_health", _down)

    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["llm"] == "error"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "LifelongLearners API"
    assert data["endpoints"]["ai"] == "/api/ai"
