"""Tests for the memory CRUD endpoints (/api/memories)."""

from __future__ import annotations

import uuid

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from journal.api import memories, search
from journal.models.memory import Visibility
from journal.services.sharing import SharingLedger
from tests.conftest import (
    FRIEND_EMAIL,
    FRIEND_ID,
    OWNER_EMAIL,
    OWNER_ID,
    STRANGER_EMAIL,
    STRANGER_ID,
    auth_headers,
    make_token,
)

OWNER = auth_headers(OWNER_ID, OWNER_EMAIL)
FRIEND = auth_headers(FRIEND_ID, FRIEND_EMAIL)
STRANGER = auth_headers(STRANGER_ID, STRANGER_EMAIL)


@pytest.fixture
async def client(build_app, users):
    app = build_app(search.router, memories.router)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
class TestAuth:

    async def test_missing_token(self, client: httpx.AsyncClient):
        response = await client.get("/api/memories")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_bad_signature(self, client: httpx.AsyncClient):
        token = make_token(OWNER_ID, OWNER_EMAIL, secret="not-the-secret")
        response = await client.get(
            "/api/memories", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_expired_token(self, client: httpx.AsyncClient):
        token = make_token(OWNER_ID, OWNER_EMAIL, expires_in=-60)
        response = await client.get(
            "/api/memories", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_first_request_provisions_user(self, client: httpx.AsyncClient, store):
        headers = auth_headers("user-new", "New.Person@Example.com")
        response = await client.get("/api/memories", headers=headers)

        assert response.status_code == 200
        user = await store.get_user("user-new")
        assert user is not None
        assert user.email == "new.person@example.com"

    async def test_email_taken_by_other_account(self, client: httpx.AsyncClient):
        headers = auth_headers("user-impostor", OWNER_EMAIL)
        response = await client.get("/api/memories", headers=headers)
        assert response.status_code == 409


@pytest.mark.asyncio
class TestCreateMemory:

    async def test_create_tags_emotion(self, client: httpx.AsyncClient):
        response = await client.post(
            "/api/memories",
            json={"content": "Tea on the balcony", "people": ["Ana"], "audioDuration": 4},
            headers=OWNER,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["userId"] == OWNER_ID
        assert body["emotion"] == "peaceful"
        assert body["visibility"] == "private"
        assert body["isPublic"] is False
        assert body["people"] == ["Ana"]
        assert body["audioDuration"] == 4
        assert "shareToken" not in body

    async def test_cannot_create_for_someone_else(self, client: httpx.AsyncClient):
        response = await client.post(
            "/api/memories",
            json={"content": "Not mine", "userId": FRIEND_ID},
            headers=OWNER,
        )
        assert response.status_code == 403

    async def test_empty_content_rejected(self, client: httpx.AsyncClient):
        response = await client.post("/api/memories", json={"content": ""}, headers=OWNER)
        assert response.status_code == 422

    async def test_whitespace_content_rejected(self, client: httpx.AsyncClient):
        response = await client.post("/api/memories", json={"content": "   "}, headers=OWNER)
        assert response.status_code == 400
        assert "content" in response.json()["detail"]


@pytest.mark.asyncio
class TestListMemories:

    async def test_filters_and_paging(self, client: httpx.AsyncClient, make_memory):
        await make_memory("Lunch with Ana", people=["Ana"], location="Lisbon")
        await make_memory("Lunch with Ben", people=["Ben"], location="Lisbon")
        await make_memory("Dinner alone", location="Porto")

        response = await client.get(
            "/api/memories", params={"location": "lisbon", "people": "ana,cleo"}, headers=OWNER
        )
        assert response.status_code == 200
        assert [m["content"] for m in response.json()] == ["Lunch with Ana"]

        response = await client.get("/api/memories", params={"limit": 2}, headers=OWNER)
        assert len(response.json()) == 2

    async def test_only_own_memories(self, client: httpx.AsyncClient, make_memory):
        await make_memory("Owner's")
        response = await client.get("/api/memories", headers=FRIEND)
        assert response.json() == []

    async def test_limit_out_of_range(self, client: httpx.AsyncClient):
        response = await client.get("/api/memories", params={"limit": 0}, headers=OWNER)
        assert response.status_code == 422


@pytest.mark.asyncio
class TestGetUpdateDelete:

    async def test_owner_reads_private(self, client: httpx.AsyncClient, make_memory):
        memory = await make_memory("Private thoughts")
        response = await client.get(f"/api/memories/{memory.id}", headers=OWNER)
        assert response.status_code == 200
        assert response.json()["id"] == str(memory.id)

    async def test_stranger_forbidden(self, client: httpx.AsyncClient, make_memory):
        memory = await make_memory("Private thoughts")
        response = await client.get(f"/api/memories/{memory.id}", headers=STRANGER)
        assert response.status_code == 403

    async def test_unknown_id(self, client: httpx.AsyncClient):
        response = await client.get(f"/api/memories/{uuid.uuid4()}", headers=OWNER)
        assert response.status_code == 404

    async def test_grantee_reads_shared(self, client: httpx.AsyncClient, store, make_memory):
        memory = await make_memory("Road trip", visibility=Visibility.SHARED)
        await SharingLedger(store).share_with_user(
            memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID
        )

        response = await client.get(f"/api/memories/{memory.id}", headers=FRIEND)
        assert response.status_code == 200

    async def test_partial_update(self, client: httpx.AsyncClient, make_memory):
        memory = await make_memory("Original", location="Oslo")

        response = await client.put(
            f"/api/memories/{memory.id}", json={"title": "Named"}, headers=OWNER
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Named"
        assert body["content"] == "Original"
        assert body["location"] == "Oslo"

    async def test_view_grantee_cannot_update(
        self, client: httpx.AsyncClient, store, make_memory
    ):
        memory = await make_memory("Road trip", visibility=Visibility.SHARED)
        await SharingLedger(store).share_with_user(
            memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID
        )

        response = await client.put(
            f"/api/memories/{memory.id}", json={"content": "changed"}, headers=FRIEND
        )
        assert response.status_code == 403

    async def test_delete_owner_only(self, client: httpx.AsyncClient, make_memory):
        memory = await make_memory()

        response = await client.delete(f"/api/memories/{memory.id}", headers=FRIEND)
        assert response.status_code == 403

        response = await client.delete(f"/api/memories/{memory.id}", headers=OWNER)
        assert response.status_code == 200
        assert response.json() == {"message": "Memory deleted successfully"}

        response = await client.get(f"/api/memories/{memory.id}", headers=OWNER)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestSemanticSearchEndpoint:

    async def test_finds_alps_hike(self, client: httpx.AsyncClient, make_memory):
        alps = await make_memory("Hiking in the Alps with Marco")
        await make_memory("Blueberry pancakes")

        response = await client.post(
            "/api/memories/semantic-search",
            json={"query": "trip to the mountains", "userId": OWNER_ID},
            headers=OWNER,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["originalQuery"] == "trip to the mountains"
        assert [hit["memory"]["id"] for hit in body["results"]] == [str(alps.id)]
        assert body["results"][0]["similarity"] > 0.3
        assert body["queryExpansion"]["searchTerms"] == ["mountains", "hiking", "alps"]

    async def test_embedding_outage_still_200(
        self, client: httpx.AsyncClient, make_memory, fake_llm
    ):
        await make_memory("Hiking in the Alps")
        fake_llm.embed_down = True

        response = await client.post(
            "/api/memories/semantic-search", json={"query": "mountains"}, headers=OWNER
        )

        assert response.status_code == 200
        body = response.json()
        assert body["results"] == []
        assert body["message"] == "Semantic search unavailable, showing 0 AI matches"
        assert body["queryExpansion"] is not None

    async def test_no_memories(self, client: httpx.AsyncClient):
        response = await client.post(
            "/api/memories/semantic-search", json={"query": "anything"}, headers=OWNER
        )
        body = response.json()
        assert body["message"] == "No memories found for semantic search"
        assert body["queryExpansion"] is None

    async def test_other_user_id_forbidden(self, client: httpx.AsyncClient):
        response = await client.post(
            "/api/memories/semantic-search",
            json={"query": "mountains", "userId": FRIEND_ID},
            headers=OWNER,
        )
        assert response.status_code == 403

    async def test_blank_query(self, client: httpx.AsyncClient, make_memory):
        await make_memory()
        response = await client.post(
            "/api/memories/semantic-search", json={"query": "   "}, headers=OWNER
        )
        assert response.status_code == 400
