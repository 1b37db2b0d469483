"""Campaign updates, comments and reward tracking emails."""

import uuid

import pytest
from httpx import AsyncClient

from tests.fakes import FakeNotifier
from tests.helpers import confirmed_pledge, launch_campaign, new_user, open_order


async def _me(client: AsyncClient, headers: dict) -> dict:
    resp = await client.get("/api/v1/users/me", headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_owner_posts_update(client: AsyncClient):
    headers = new_user("creator")
    campaign = await launch_campaign(client, headers)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/update",
        json={
            "title": "  First batch assembled  ",
            "content": "Lanterns are coming off the line.",
            "imageUrl": "https://cdn.example.com/batch.jpg",
        },
        headers=headers,
    )

    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["message"] == "Campaign update created successfully"
    assert data["update"]["title"] == "First batch assembled"
    assert data["update"]["campaign_id"] == campaign["id"]
    assert data["update"]["is_public"] is True
    assert data["update"]["image_url"] == "https://cdn.example.com/batch.jpg"


@pytest.mark.asyncio
async def test_only_owner_posts_updates(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/update",
        json={"title": "Hijack", "content": "Not my campaign"},
        headers=new_user("stranger"),
    )

    assert resp.status_code == 403
    assert resp.json()["message"] == "You can only create updates for your own campaigns"


@pytest.mark.asyncio
async def test_update_for_unknown_campaign(client: AsyncClient):
    resp = await client.post(
        f"/api/v1/campaigns/{uuid.uuid4()}/update",
        json={"title": "News", "content": "Body"},
        headers=new_user("creator"),
    )

    assert resp.status_code == 404
    assert resp.json()["message"] == "Campaign not found"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"title": "", "content": "Body"},
        {"title": "News", "content": "   "},
        {"title": "News", "content": "x" * 5001},
        {"title": "News", "content": "Body", "imageUrl": "not-a-url"},
    ],
)
async def test_update_validation(client: AsyncClient, body: dict):
    headers = new_user("creator")
    campaign = await launch_campaign(client, headers)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/update", json=body, headers=headers
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_listing_shows_public_updates_only(client: AsyncClient):
    headers = new_user("creator")
    campaign = await launch_campaign(client, headers)
    url = f"/api/v1/campaigns/{campaign['id']}/update"
    await client.post(url, json={"title": "Public", "content": "Hello"}, headers=headers)
    await client.post(
        url, json={"title": "Backstage", "content": "Draft", "isPublic": False}, headers=headers
    )

    resp = await client.get(f"/api/v1/campaigns/{campaign['id']}/updates")

    assert resp.status_code == 200
    assert [u["title"] for u in resp.json()["updates"]] == ["Public"]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_comment_and_list(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))
    first = new_user("fan")
    second = new_user("fan")
    url = f"/api/v1/campaigns/{campaign['id']}/comments"

    created = await client.post(url, json={"content": "  Love this!  "}, headers=first)
    await client.post(url, json={"content": "When do they ship?"}, headers=second)

    assert created.status_code == 201, created.text
    body = created.json()
    assert body["message"] == "Comment created successfully"
    assert body["comment"]["content"] == "Love this!"
    first_user = await _me(client, first)
    assert body["comment"]["user"]["id"] == first_user["id"]
    assert body["comment"]["user"]["display_name"] == first_user["email"]

    listing = await client.get(url)
    assert listing.status_code == 200
    data = listing.json()
    assert data["campaign"] == {"id": campaign["id"], "title": campaign["title"]}
    assert [c["content"] for c in data["comments"]] == ["Love this!", "When do they ship?"]


@pytest.mark.asyncio
async def test_comment_requires_sign_in(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/comments", json={"content": "Hi"}
    )

    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "    ", "x" * 1001])
async def test_comment_validation(client: AsyncClient, content: str):
    campaign = await launch_campaign(client, new_user("creator"))

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/comments",
        json={"content": content},
        headers=new_user("fan"),
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_comments_for_unknown_campaign(client: AsyncClient):
    missing = uuid.uuid4()

    listed = await client.get(f"/api/v1/campaigns/{missing}/comments")
    posted = await client.post(
        f"/api/v1/campaigns/{missing}/comments", json={"content": "Hi"}, headers=new_user()
    )

    assert listed.status_code == 404
    assert posted.status_code == 404
    assert posted.json()["message"] == "Campaign not found"


# ---------------------------------------------------------------------------
# Reward tracking
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_tracking_to_confirmed_backers(client: AsyncClient, notifier: FakeNotifier):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)
    backers = [new_user("backer"), new_user("backer")]
    for headers in backers:
        await confirmed_pledge(client, headers, campaign["id"])
    waiting = await open_order(client, new_user("backer"), campaign["id"])
    assert waiting.status_code == 201

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking",
        json={"trackingNumber": "1Z999AA1", "carrierName": "UPS"},
        headers=creator,
    )

    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["message"] == "Tracking emails sent to 2 backers"
    assert data["results"]["total"] == 2
    assert data["results"]["successful"] == 2
    assert data["results"]["failed"] == 0

    emails = {(await _me(client, h))["email"] for h in backers}
    assert {n.recipient_email for n in notifier.tracking} == emails
    notice = notifier.tracking[0]
    assert notice.campaign_title == campaign["title"]
    assert notice.tracking_number == "1Z999AA1"
    assert notice.tracking_url == "https://www.google.com/search?q=UPS+tracking+1Z999AA1"


@pytest.mark.asyncio
async def test_send_tracking_reports_failed_deliveries(
    client: AsyncClient, notifier: FakeNotifier
):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)
    ok, bounced = new_user("backer"), new_user("backer")
    await confirmed_pledge(client, ok, campaign["id"])
    await confirmed_pledge(client, bounced, campaign["id"])
    bounced_email = (await _me(client, bounced))["email"]
    notifier.unreachable.add(bounced_email)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking",
        json={
            "trackingNumber": "940011",
            "carrierName": "USPS",
            "trackingUrl": "https://tools.usps.com/go/TrackConfirmAction?tLabels=940011",
        },
        headers=creator,
    )

    assert resp.status_code == 200, resp.text
    results = resp.json()["results"]
    assert results["successful"] == 1
    assert results["failed"] == 1
    [failure] = [d for d in results["details"] if not d["success"]]
    assert failure["email"] == bounced_email
    assert failure["error"] == "SMTP server unavailable"
    assert notifier.tracking[0].tracking_url.startswith("https://tools.usps.com/")


@pytest.mark.asyncio
async def test_send_tracking_without_confirmed_pledges(client: AsyncClient):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking",
        json={"trackingNumber": "1Z", "carrierName": "UPS"},
        headers=creator,
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Bad Request"
    assert resp.json()["message"] == "No confirmed pledges found for this campaign"


@pytest.mark.asyncio
async def test_send_tracking_for_someone_elses_campaign(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))
    other_creator = new_user("creator")
    await launch_campaign(client, other_creator)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking",
        json={"trackingNumber": "1Z", "carrierName": "UPS"},
        headers=other_creator,
    )

    assert resp.status_code == 404
    assert resp.json()["message"] == "Campaign not found or you are not the creator"


@pytest.mark.asyncio
async def test_send_tracking_requires_creator_account(client: AsyncClient):
    campaign = await launch_campaign(client, new_user("creator"))

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking",
        json={"trackingNumber": "1Z", "carrierName": "UPS"},
        headers=new_user("backer"),
    )

    assert resp.status_code == 403
    assert resp.json()["message"] == "Creator account required"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"carrierName": "UPS"},
        {"trackingNumber": "1Z"},
        {"trackingNumber": "1Z", "carrierName": "UPS", "trackingUrl": "ftp://x"},
    ],
)
async def test_send_tracking_validation(client: AsyncClient, body: dict):
    creator = new_user("creator")
    campaign = await launch_campaign(client, creator)

    resp = await client.post(
        f"/api/v1/campaigns/{campaign['id']}/send-tracking", json=body, headers=creator
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"
