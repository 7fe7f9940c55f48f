"""Test credential management endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_list_credentials(client: AsyncClient):
    response = await client.post("/api/v1/credentials", json={"name": " alice ", "key": " secret "})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "alice"
    assert data["is_enabled"] is True
    assert "key" not in data

    listed = (await client.get("/api/v1/credentials")).json()
    assert [c["name"] for c in listed] == ["alice"]


@pytest.mark.asyncio
async def test_key_is_stored_trimmed(client: AsyncClient, credential_store):
    await client.post("/api/v1/credentials", json={"name": "alice", "key": " secret "})

    stored = await credential_store.list_all()
    assert stored[0].key == "secret"


@pytest.mark.asyncio
async def test_duplicate_name_conflicts(client: AsyncClient):
    await client.post("/api/v1/credentials", json={"name": "alice", "key": "one"})
    response = await client.post("/api/v1/credentials", json={"name": "alice", "key": "two"})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_enable_and_disable(client: AsyncClient, credential_store):
    credential = await credential_store.add("alice", "secret")

    response = await client.patch(f"/api/v1/credentials/{credential.id}", json={"is_enabled": False})

    assert response.status_code == 200
    assert response.json()["is_enabled"] is False
    assert await credential_store.list_enabled() == []


@pytest.mark.asyncio
async def test_update_missing_credential(client: AsyncClient):
    response = await client.patch("/api/v1/credentials/42", json={"is_enabled": True})
    assert response.status_code == 404
