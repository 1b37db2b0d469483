"""Shared helpers for campaign and pledge integration tests."""

import uuid
from datetime import datetime

from httpx import AsyncClient
from sqlalchemy import select, update

from tests.conftest import auth_headers
from weraise.db.session import async_session_factory
from weraise.models.campaign import Campaign
from weraise.models.category import Category
from weraise.models.pledge import Pledge
from weraise.models.reward_tier import RewardTier
from weraise.models.transaction import Transaction


def uid() -> str:
    return uuid.uuid4().hex[:8]


def new_user(prefix: str = "user") -> dict:
    """Headers for a fresh user (auto-provisioned on first request)."""
    unique = uid()
    headers = auth_headers(sub=f"{prefix}-{unique}", email=f"{prefix}-{unique}@example.com")
    headers["Content-Type"] = "application/json"
    return headers


async def seed_category(
    name: str | None = None, *, sort_order: int = 0, is_active: bool = True
) -> str:
    async with async_session_factory() as session:
        category = Category(
            name=name or f"Category {uid()}",
            description="Test category",
            icon_name="settings",
            sort_order=sort_order,
            is_active=is_active,
        )
        session.add(category)
        await session.commit()
        return str(category.id)


def campaign_payload(category_id: str, **overrides) -> dict:
    payload = {
        "title": f"Solar Lantern {uid()}",
        "tagline": "Light for every home",
        "description": "Affordable solar lanterns for off-grid communities.",
        "categoryId": category_id,
        "fundingGoal": "500.00",
        "minimumPledge": "5.00",
        "fundingType": "all-or-nothing",
        "durationDays": 30,
        "rewardTiers": [
            {
                "amount": "25.00",
                "title": "Early Bird Lantern",
                "description": "One lantern from the first batch",
                "quantityLimit": 2,
            },
            {
                "amount": "100.00",
                "title": "Village Pack",
                "description": "Five lanterns for a community",
            },
        ],
    }
    payload.update(overrides)
    return payload


async def launch_campaign(
    client: AsyncClient, headers: dict, category_id: str | None = None, **overrides
) -> dict:
    """Create (and by default publish) a campaign through the API."""
    if category_id is None:
        category_id = await seed_category()
    resp = await client.post(
        "/api/v1/campaigns",
        json=campaign_payload(category_id, **overrides),
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["campaign"]


def tier_id(campaign: dict, title: str = "Early Bird Lantern") -> str:
    return next(t["id"] for t in campaign["reward_tiers"] if t["title"] == title)


async def open_order(
    client: AsyncClient,
    headers: dict,
    campaign_id: str,
    amount: str = "25.00",
    reward_tier_id: str | None = None,
):
    body = {"campaignId": campaign_id, "amount": amount}
    if reward_tier_id is not None:
        body["rewardTierId"] = reward_tier_id
    return await client.post("/api/v1/pledges/paypal/create-order", json=body, headers=headers)


async def capture(client: AsyncClient, headers: dict, order_id: str, pledge_id: str):
    return await client.post(
        "/api/v1/pledges/paypal/capture-order",
        json={"orderId": order_id, "pledgeId": pledge_id},
        headers=headers,
    )


async def confirmed_pledge(
    client: AsyncClient,
    headers: dict,
    campaign_id: str,
    amount: str = "25.00",
    reward_tier_id: str | None = None,
) -> str:
    """Open and capture an order, returning the confirmed pledge id."""
    opened = await open_order(client, headers, campaign_id, amount, reward_tier_id)
    assert opened.status_code == 201, opened.text
    data = opened.json()
    captured = await capture(client, headers, data["orderID"], data["pledgeId"])
    assert captured.status_code == 200, captured.text
    return data["pledgeId"]


# ---------------------------------------------------------------------------
# Direct database access (state the API cannot reach, and assertions)
# ---------------------------------------------------------------------------


async def get_pledge_row(pledge_id: str) -> Pledge | None:
    async with async_session_factory() as session:
        return await session.get(Pledge, uuid.UUID(pledge_id))


async def get_tier_row(reward_tier_id: str) -> RewardTier:
    async with async_session_factory() as session:
        return await session.get(RewardTier, uuid.UUID(reward_tier_id))


async def pledges_for_campaign(campaign_id: str) -> list[Pledge]:
    async with async_session_factory() as session:
        result = await session.execute(
            select(Pledge).where(Pledge.campaign_id == uuid.UUID(campaign_id))
        )
        return list(result.scalars().all())


async def transactions_for(pledge_id: str) -> list[Transaction]:
    async with async_session_factory() as session:
        result = await session.execute(
            select(Transaction).where(Transaction.pledge_id == uuid.UUID(pledge_id))
        )
        return list(result.scalars().all())


async def set_campaign_fields(campaign_id: str, **values) -> None:
    async with async_session_factory() as session:
        await session.execute(
            update(Campaign).where(Campaign.id == uuid.UUID(campaign_id)).values(**values)
        )
        await session.commit()


async def set_tier_claimed(reward_tier_id: str, claimed: int) -> None:
    async with async_session_factory() as session:
        await session.execute(
            update(RewardTier)
            .where(RewardTier.id == uuid.UUID(reward_tier_id))
            .values(quantity_claimed=claimed)
        )
        await session.commit()


async def set_pledge_created_at(pledge_id: str, created_at: datetime) -> None:
    async with async_session_factory() as session:
        await session.execute(
            update(Pledge).where(Pledge.id == uuid.UUID(pledge_id)).values(created_at=created_at)
        )
        await session.commit()
