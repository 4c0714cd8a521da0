"""Smoke tests for the assembled application (create_app)."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from journal import database
from journal.ai.llm import get_llm_client
from journal.config import get_settings
from journal.main import create_app
from journal.storage import get_store


@pytest.fixture
async def client(fake_settings, store, fake_llm, monkeypatch):
    monkeypatch.setattr(database, "_engine", None)
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: fake_settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
class TestApp:

    async def test_liveness(self, client):
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_readiness_without_database(self, client):
        response = await client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["database"] == "unreachable"

    async def test_api_requires_token(self, client):
        response = await client.get("/api/memories")
        assert response.status_code == 401

    async def test_share_link_route_is_public(self, client):
        response = await client.get("/api/shared/unknown-token")
        assert response.status_code == 404

    async def test_security_headers_and_request_id(self, client):
        response = await client.get("/health/live")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "x-request-id" in response.headers
