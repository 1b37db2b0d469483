"""Pledge history, per-campaign and creator-wide listings, single pledge view."""

import uuid

import pytest
from httpx import AsyncClient

from tests.helpers import confirmed_pledge, launch_campaign, new_user, open_order, tier_id


@pytest.mark.asyncio
async def test_history_lists_own_pledges_with_campaign(client: AsyncClient):
    creator = new_user("creator")
    first = await launch_campaign(client, creator, title="Solar Lantern")
    second = await launch_campaign(client, creator, title="Rooftop Garden")
    backer = new_user("backer")
    await confirmed_pledge(client, backer, first["id"])
    await open_order(client, backer, second["id"], "10.00")
    await open_order(client, new_user("someone-else"), first["id"])

    response = await client.get("/api/v1/pledges/history", headers=backer)
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 2}
    titles = sorted(p["campaign"]["title"] for p in data["pledges"])
    assert titles == ["Rooftop Garden", "Solar Lantern"]

    confirmed = await client.get(
        "/api/v1/pledges/history", params={"status": "confirmed"}, headers=backer
    )
    [pledge] = confirmed.json()["pledges"]
    assert pledge["campaign_id"] == first["id"]
    assert pledge["amount"] == "25.00"


@pytest.mark.asyncio
async def test_history_limit_is_capped(client: AsyncClient):
    response = await client.get(
        "/api/v1/pledges/history", params={"limit": 51}, headers=new_user("backer")
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_campaign_pledges_with_statistics(client: AsyncClient):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)
    await confirmed_pledge(client, new_user("backer"), campaign["id"], "25.00")
    await open_order(client, new_user("backer"), campaign["id"], "100.00")

    response = await client.get(f"/api/v1/pledges/campaign/{campaign['id']}", headers=creator)
    assert response.status_code == 200
    data = response.json()
    assert data["statistics"] == {
        "total_raised": "25.00",
        "confirmed_pledges": 1,
        "pending_pledges": 1,
        "total_pledges": 2,
    }
    assert data["pagination"]["total"] == 2
    assert all(p["backer"]["email"].endswith("@example.com") for p in data["pledges"])

    # Status filter narrows the page, not the statistics
    pending = await client.get(
        f"/api/v1/pledges/campaign/{campaign['id']}",
        params={"status": "pending"},
        headers=creator,
    )
    body = pending.json()
    assert [p["status"] for p in body["pledges"]] == ["pending"]
    assert body["statistics"]["total_pledges"] == 2


@pytest.mark.asyncio
async def test_campaign_pledges_owner_only(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))
    response = await client.get(
        f"/api/v1/pledges/campaign/{campaign['id']}", headers=new_user("other")
    )
    assert response.status_code == 403
    assert response.json()["message"] == "You can only view pledges for your own campaigns"


@pytest.mark.asyncio
async def test_campaign_pledges_unknown_campaign(client: AsyncClient):
    response = await client.get(
        f"/api/v1/pledges/campaign/{uuid.uuid4()}", headers=new_user("creator")
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_creator_pledges_requires_creator(client: AsyncClient):
    response = await client.get("/api/v1/pledges/creator/all", headers=new_user("backer"))
    assert response.status_code == 403
    assert response.json()["message"] == "Creator account required"


@pytest.mark.asyncio
async def test_creator_pledges_across_campaigns(client: AsyncClient):
    creator = new_user("creator")
    lantern = await launch_campaign(client, creator)
    garden = await launch_campaign(client, creator)
    await launch_campaign(client, new_user("rival"))

    await confirmed_pledge(client, new_user("backer"), lantern["id"], "25.00")
    shipped_id = await confirmed_pledge(client, new_user("backer"), garden["id"], "40.00")
    await open_order(client, new_user("backer"), garden["id"], "15.00")
    await client.put(
        f"/api/v1/pledges/{shipped_id}", json={"fulfillmentStatus": "shipped"}, headers=creator
    )

    response = await client.get("/api/v1/pledges/creator/all", headers=creator)
    assert response.status_code == 200
    data = response.json()
    assert data["statistics"] == {
        "total_raised": "65.00",
        "confirmed_pledges": 2,
        "pending_pledges": 1,
        "total_pledges": 3,
        "pending_fulfillment": 1,
    }
    assert sorted(c["id"] for c in data["campaigns"]) == sorted([lantern["id"], garden["id"]])

    only_garden = await client.get(
        "/api/v1/pledges/creator/all", params={"campaignId": garden["id"]}, headers=creator
    )
    assert {p["campaign_id"] for p in only_garden.json()["pledges"]} == {garden["id"]}
    assert only_garden.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_get_pledge_visible_to_backer_and_creator(client: AsyncClient):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)
    backer = new_user("backer")
    opened = (
        await open_order(client, backer, campaign["id"], "25.00", tier_id(campaign))
    ).json()

    as_backer = await client.get(f"/api/v1/pledges/{opened['pledgeId']}", headers=backer)
    assert as_backer.status_code == 200
    pledge = as_backer.json()["pledge"]
    assert pledge["reward_tier"]["title"] == "Early Bird Lantern"
    assert pledge["campaign"]["id"] == campaign["id"]

    as_creator = await client.get(f"/api/v1/pledges/{opened['pledgeId']}", headers=creator)
    assert as_creator.status_code == 200

    as_outsider = await client.get(
        f"/api/v1/pledges/{opened['pledgeId']}", headers=new_user("outsider")
    )
    assert as_outsider.status_code == 403


@pytest.mark.asyncio
async def test_get_unknown_pledge(client: AsyncClient):
    response = await client.get(f"/api/v1/pledges/{uuid.uuid4()}", headers=new_user("backer"))
    assert response.status_code == 404
