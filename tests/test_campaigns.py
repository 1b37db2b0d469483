"""Campaign creation, listing, editing and status transition tests."""

import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from tests.helpers import campaign_payload, launch_campaign, new_user, seed_category


@pytest.mark.asyncio
async def test_create_published_campaign(client: AsyncClient):
    headers = new_user("creator")
    category_id = await seed_category("Technology")

    campaign = await launch_campaign(client, headers, category_id, durationDays=30)

    assert campaign["status"] == "active"
    assert campaign["category_name"] == "Technology"
    assert campaign["funding_goal"] == "500.00"
    assert campaign["total_raised"] == "0.00"
    assert campaign["backer_count"] == 0
    assert campaign["days_remaining"] == 30

    start = datetime.fromisoformat(campaign["start_date"])
    end = datetime.fromisoformat(campaign["end_date"])
    assert end - start == timedelta(days=30)
    assert campaign["published_at"] is not None

    tiers = campaign["reward_tiers"]
    assert [t["title"] for t in tiers] == ["Early Bird Lantern", "Village Pack"]
    assert tiers[0]["quantity_limit"] == 2
    assert tiers[0]["quantity_remaining"] == 2
    assert tiers[0]["is_sold_out"] is False
    assert tiers[1]["quantity_remaining"] is None


@pytest.mark.asyncio
async def test_create_campaign_enables_creator_features(client: AsyncClient):
    headers = new_user("creator")
    await launch_campaign(client, headers)

    me = await client.get("/api/v1/users/me", headers=headers)
    assert me.json()["is_creator"] is True


@pytest.mark.asyncio
async def test_create_draft_campaign(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"), publish=False)
    assert campaign["status"] == "draft"
    assert campaign["start_date"] is None
    assert campaign["end_date"] is None


@pytest.mark.asyncio
async def test_create_campaign_unknown_category(client: AsyncClient):
    response = await client.post(
        "/api/v1/campaigns",
        json=campaign_payload(str(uuid.uuid4())),
        headers=new_user("creator"),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid category"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"durationDays": 0},
        {"durationDays": 91},
        {"fundingGoal": "0"},
        {"fundingGoal": "10000000000.00"},
        {"minimumPledge": "100000000.00"},
        {"fundingType": "flexible"},
        {"rewardTiers": []},
        {
            "minimumPledge": "50.00",
            "rewardTiers": [{"amount": "25.00", "title": "Too cheap", "description": "x"}],
        },
    ],
)
async def test_create_campaign_validation(client: AsyncClient, overrides: dict):
    category_id = await seed_category()
    response = await client.post(
        "/api/v1/campaigns",
        json=campaign_payload(category_id, **overrides),
        headers=new_user("creator"),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["message"] == "Invalid input data"


@pytest.mark.asyncio
async def test_get_unknown_campaign_is_404(client: AsyncClient):
    response = await client.get(f"/api/v1/campaigns/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["message"] == "Campaign not found"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_defaults_to_active_campaigns(client: AsyncClient):
    headers = new_user("creator")
    category_id = await seed_category()
    live = await launch_campaign(client, headers, category_id)
    await launch_campaign(client, headers, category_id, publish=False)

    response = await client.get("/api/v1/campaigns")
    assert response.status_code == 200
    data = response.json()
    assert [c["id"] for c in data["campaigns"]] == [live["id"]]
    assert data["pagination"] == {"page": 1, "limit": 20, "total": 1}


@pytest.mark.asyncio
async def test_list_rejects_non_public_status(client: AsyncClient):
    response = await client.get("/api/v1/campaigns", params={"status": "draft"})
    assert response.status_code == 400
    assert response.json()["details"]["allowed"] == ["active", "completed", "failed"]


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort(client: AsyncClient):
    response = await client.get("/api/v1/campaigns", params={"sort": "random"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_by_category_and_search(client: AsyncClient):
    headers = new_user("creator")
    tech = await seed_category("Technology")
    community = await seed_category("Community")
    garden = await launch_campaign(client, headers, community, title="Rooftop Community Garden")
    await launch_campaign(client, headers, tech, title="Open Hardware Synth")

    by_category = await client.get("/api/v1/campaigns", params={"categoryId": community})
    assert [c["id"] for c in by_category.json()["campaigns"]] == [garden["id"]]

    by_search = await client.get("/api/v1/campaigns", params={"search": "garden"})
    assert [c["id"] for c in by_search.json()["campaigns"]] == [garden["id"]]


@pytest.mark.asyncio
async def test_list_sort_ending_soon(client: AsyncClient):
    headers = new_user("creator")
    category_id = await seed_category()
    later = await launch_campaign(client, headers, category_id, durationDays=60)
    sooner = await launch_campaign(client, headers, category_id, durationDays=7)

    response = await client.get("/api/v1/campaigns", params={"sort": "ending_soon"})
    assert [c["id"] for c in response.json()["campaigns"]] == [sooner["id"], later["id"]]


@pytest.mark.asyncio
async def test_list_paginates(client: AsyncClient):
    headers = new_user("creator")
    category_id = await seed_category()
    for _ in range(3):
        await launch_campaign(client, headers, category_id)

    response = await client.get("/api/v1/campaigns", params={"page": 2, "limit": 2})
    data = response.json()
    assert len(data["campaigns"]) == 1
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 3}


@pytest.mark.asyncio
async def test_my_campaigns_includes_drafts(client: AsyncClient):
    headers = new_user("creator")
    category_id = await seed_category()
    await launch_campaign(client, headers, category_id)
    await launch_campaign(client, headers, category_id, publish=False)
    await launch_campaign(client, new_user("other"), category_id)

    response = await client.get("/api/v1/campaigns/my-campaigns", headers=headers)
    assert response.status_code == 200
    statuses = sorted(c["status"] for c in response.json()["campaigns"])
    assert statuses == ["active", "draft"]

    drafts = await client.get(
        "/api/v1/campaigns/my-campaigns", params={"status": "draft"}, headers=headers
    )
    assert [c["status"] for c in drafts.json()["campaigns"]] == ["draft"]


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_draft_campaign(client: AsyncClient):
    headers = new_user("creator")
    draft = await launch_campaign(client, headers, publish=False)

    response = await client.put(
        f"/api/v1/campaigns/{draft['id']}",
        json={"title": "Solar Lantern v2", "fundingGoal": "750.00"},
        headers=headers,
    )
    assert response.status_code == 200
    campaign = response.json()["campaign"]
    assert campaign["title"] == "Solar Lantern v2"
    assert campaign["funding_goal"] == "750.00"
    assert campaign["updated_at"] is not None


@pytest.mark.asyncio
async def test_update_active_campaign_rejected(client: AsyncClient):
    headers = new_user("creator")
    live = await launch_campaign(client, headers)

    response = await client.put(
        f"/api/v1/campaigns/{live['id']}", json={"title": "Changed"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Only draft campaigns can be edited"


@pytest.mark.asyncio
async def test_update_someone_elses_campaign_forbidden(client: AsyncClient):
    draft = await launch_campaign(client, new_user("creator"), publish=False)
    response = await client.put(
        f"/api/v1/campaigns/{draft['id']}", json={"title": "Mine now"}, headers=new_user("other")
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_cannot_null_required_field(client: AsyncClient):
    headers = new_user("creator")
    draft = await launch_campaign(client, headers, publish=False)
    response = await client.put(
        f"/api/v1/campaigns/{draft['id']}", json={"title": None}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "title cannot be empty"


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_publish_draft_stamps_dates(client: AsyncClient):
    headers = new_user("creator")
    draft = await launch_campaign(client, headers, publish=False, durationDays=14)

    response = await client.patch(
        f"/api/v1/campaigns/{draft['id']}/status", json={"status": "active"}, headers=headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "active"
    assert data["published_at"] is not None
    start = datetime.fromisoformat(data["start_date"])
    end = datetime.fromisoformat(data["end_date"])
    assert end - start == timedelta(days=14)


@pytest.mark.asyncio
async def test_invalid_campaign_transition(client: AsyncClient):
    headers = new_user("creator")
    live = await launch_campaign(client, headers)

    response = await client.patch(
        f"/api/v1/campaigns/{live['id']}/status", json={"status": "draft"}, headers=headers
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Cannot transition campaign from 'active' to 'draft'"
    assert body["details"]["allowed"] == ["cancelled", "completed", "failed"]


@pytest.mark.asyncio
async def test_completed_campaign_is_terminal_and_listed(client: AsyncClient):
    headers = new_user("creator")
    live = await launch_campaign(client, headers)

    done = await client.patch(
        f"/api/v1/campaigns/{live['id']}/status", json={"status": "completed"}, headers=headers
    )
    assert done.status_code == 200

    again = await client.patch(
        f"/api/v1/campaigns/{live['id']}/status", json={"status": "active"}, headers=headers
    )
    assert again.status_code == 400

    listed = await client.get("/api/v1/campaigns", params={"status": "completed"})
    assert [c["id"] for c in listed.json()["campaigns"]] == [live["id"]]


@pytest.mark.asyncio
async def test_status_change_requires_owner(client: AsyncClient):
    live = await launch_campaign(client, new_user("creator"))
    response = await client.patch(
        f"/api/v1/campaigns/{live['id']}/status",
        json={"status": "cancelled"},
        headers=new_user("other"),
    )
    assert response.status_code == 403
