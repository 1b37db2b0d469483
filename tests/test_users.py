"""Current-user profile tests."""

import pytest
from httpx import AsyncClient

from tests.conftest import make_token
from tests.helpers import new_user


@pytest.mark.asyncio
async def test_me_auto_provisions_user(client: AsyncClient):
    token = make_token(sub="fresh-sub", email="fresh@example.com", name="Fresh Person")
    headers = {"Authorization": f"Bearer {token}"}
    response = await client.get("/api/v1/users/me", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "fresh@example.com"
    assert data["full_name"] == "Fresh Person"
    assert data["is_creator"] is False
    assert data["is_active"] is True

    # Second call resolves the same row
    again = await client.get("/api/v1/users/me", headers=headers)
    assert again.json()["id"] == data["id"]


@pytest.mark.asyncio
async def test_update_profile_accepts_camel_case(client: AsyncClient):
    headers = new_user("profile")
    response = await client.put(
        "/api/v1/users/me",
        json={"fullName": "Ada Lovelace", "displayName": "ada"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["full_name"] == "Ada Lovelace"
    assert data["display_name"] == "ada"


@pytest.mark.asyncio
async def test_update_profile_rejects_empty_body(client: AsyncClient):
    response = await client.put("/api/v1/users/me", json={}, headers=new_user("profile"))
    assert response.status_code == 400
    assert response.json()["message"] == "No valid updates provided"


@pytest.mark.asyncio
async def test_update_profile_rejects_null_full_name(client: AsyncClient):
    response = await client.put(
        "/api/v1/users/me", json={"fullName": None}, headers=new_user("profile")
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_become_creator_is_idempotent(client: AsyncClient):
    headers = new_user("creator")
    first = await client.post("/api/v1/users/me/become-creator", headers=headers)
    assert first.status_code == 200
    assert first.json()["is_creator"] is True

    second = await client.post("/api/v1/users/me/become-creator", headers=headers)
    assert second.status_code == 200
    assert second.json()["is_creator"] is True
