"""Campaign endpoints.

GET  /campaigns                 public listing with funding summaries
GET  /campaigns/my-campaigns    the caller's campaigns, any status
GET  /campaigns/{id}            campaign with reward tiers
POST /campaigns                 create (with reward tiers), optionally publishing
PUT  /campaigns/{id}            owner edits while in draft
"""

import logging
import math
import uuid
from datetime import timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from weraise.core.dependencies import get_current_user, get_db
from weraise.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from weraise.db.base import ensure_utc, utcnow
from weraise.models.campaign import Campaign
from weraise.models.category import Category
from weraise.models.enums import CampaignStatus, PledgeStatus
from weraise.models.pledge import Pledge
from weraise.models.reward_tier import RewardTier
from weraise.models.user import User
from weraise.schemas.campaign import (
    CampaignCreateRequest,
    CampaignDetail,
    CampaignDetailResponse,
    CampaignListResponse,
    CampaignResponse,
    CampaignSummary,
    CampaignUpdateRequest,
    RewardTierResponse,
)
from weraise.schemas.common import PageMeta

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_STATUSES = {CampaignStatus.ACTIVE, CampaignStatus.COMPLETED, CampaignStatus.FAILED}
SORT_OPTIONS = {"newest", "most_funded", "popular", "ending_soon"}
REQUIRED_FIELDS = {"title", "description", "funding_goal", "minimum_pledge", "duration_days"}


def activate(campaign: Campaign) -> None:
    """Stamp publication dates when a campaign goes live."""
    now = utcnow()
    campaign.status = CampaignStatus.ACTIVE
    if campaign.start_date is None:
        campaign.start_date = now
    if campaign.published_at is None:
        campaign.published_at = now
    if campaign.end_date is None:
        campaign.end_date = ensure_utc(campaign.start_date) + timedelta(
            days=campaign.duration_days
        )


def _funding_subquery():
    return (
        select(
            Pledge.campaign_id.label("campaign_id"),
            func.coalesce(func.sum(Pledge.amount), 0).label("total_raised"),
            func.count(Pledge.id).label("backer_count"),
        )
        .where(Pledge.status == PledgeStatus.CONFIRMED)
        .group_by(Pledge.campaign_id)
        .subquery()
    )


def _summary_query() -> tuple[Select, object]:
    funding = _funding_subquery()
    stmt = (
        select(
            Campaign,
            funding.c.total_raised,
            funding.c.backer_count,
            Category.name,
            User.display_name,
            User.full_name,
        )
        .outerjoin(funding, funding.c.campaign_id == Campaign.id)
        .join(Category, Category.id == Campaign.category_id)
        .join(User, User.id == Campaign.creator_id)
    )
    return stmt, funding


def _summarize(
    campaign: Campaign,
    raised,
    backers,
    category_name: str | None,
    creator_name: str | None,
    model: type[CampaignSummary] = CampaignSummary,
    **extra,
) -> CampaignSummary:
    total_raised = Decimal(str(raised or 0)).quantize(Decimal("0.01"))
    goal = Decimal(campaign.funding_goal)
    end_date = ensure_utc(campaign.end_date)
    if end_date is not None:
        seconds_left = (end_date - utcnow()).total_seconds()
        days_remaining = max(0, math.ceil(seconds_left / 86400))
    else:
        days_remaining = campaign.duration_days

    base = CampaignResponse.model_validate(campaign).model_dump()
    return model(
        **base,
        total_raised=total_raised,
        backer_count=backers or 0,
        funding_percentage=round(total_raised / goal * 100) if goal > 0 else 0,
        days_remaining=days_remaining,
        category_name=category_name,
        creator_name=creator_name,
        **extra,
    )


async def _owned_campaign(db: AsyncSession, campaign_id: uuid.UUID, user: User) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    if campaign.creator_id != user.id:
        raise ForbiddenError("You can only modify your own campaigns")
    return campaign


async def _detail(db: AsyncSession, campaign_id: uuid.UUID) -> CampaignDetail:
    stmt, _ = _summary_query()
    stmt = stmt.options(selectinload(Campaign.reward_tiers)).where(Campaign.id == campaign_id)
    row = (await db.execute(stmt)).one_or_none()
    if row is None:
        raise NotFoundError("Campaign not found")
    campaign, raised, backers, category_name, display_name, full_name = row
    return _summarize(
        campaign,
        raised,
        backers,
        category_name,
        display_name or full_name,
        model=CampaignDetail,
        reward_tiers=[RewardTierResponse.model_validate(t) for t in campaign.reward_tiers],
    )


def _rows_to_summaries(rows) -> list[CampaignSummary]:
    return [
        _summarize(campaign, raised, backers, category_name, display_name or full_name)
        for campaign, raised, backers, category_name, display_name, full_name in rows
    ]


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    status: CampaignStatus = Query(CampaignStatus.ACTIVE),
    category_id: uuid.UUID | None = Query(None, alias="categoryId"),
    search: str | None = Query(None, max_length=200),
    sort: str = Query("newest"),
    db: AsyncSession = Depends(get_db),
) -> CampaignListResponse:
    if status not in PUBLIC_STATUSES:
        raise ValidationFailedError(
            "Invalid status", details={"allowed": sorted(str(s) for s in PUBLIC_STATUSES)}
        )
    if sort not in SORT_OPTIONS:
        raise ValidationFailedError(
            "Invalid sort option", details={"allowed": sorted(SORT_OPTIONS)}
        )

    filters = [Campaign.status == status]
    if category_id is not None:
        filters.append(Campaign.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(
                Campaign.title.ilike(pattern),
                Campaign.tagline.ilike(pattern),
                Campaign.description.ilike(pattern),
            )
        )

    total = await db.scalar(select(func.count(Campaign.id)).where(*filters))

    stmt, funding = _summary_query()
    order_by = {
        "newest": [Campaign.created_at.desc()],
        "most_funded": [func.coalesce(funding.c.total_raised, 0).desc()],
        "popular": [func.coalesce(funding.c.backer_count, 0).desc()],
        "ending_soon": [Campaign.end_date.asc()],
    }[sort]
    stmt = (
        stmt.where(*filters)
        .order_by(*order_by, Campaign.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()

    return CampaignListResponse(
        campaigns=_rows_to_summaries(rows),
        pagination=PageMeta(page=page, limit=limit, total=total or 0),
    )


@router.get("/my-campaigns", response_model=CampaignListResponse)
async def my_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    status: CampaignStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignListResponse:
    filters = [Campaign.creator_id == user.id]
    if status is not None:
        filters.append(Campaign.status == status)

    total = await db.scalar(select(func.count(Campaign.id)).where(*filters))

    stmt, _ = _summary_query()
    stmt = (
        stmt.where(*filters)
        .order_by(Campaign.created_at.desc(), Campaign.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()

    return CampaignListResponse(
        campaigns=_rows_to_summaries(rows),
        pagination=PageMeta(page=page, limit=limit, total=total or 0),
    )


@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(
    campaign_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> CampaignDetailResponse:
    return CampaignDetailResponse(campaign=await _detail(db, campaign_id))


@router.post("", response_model=CampaignDetailResponse, status_code=201)
async def create_campaign(
    body: CampaignCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignDetailResponse:
    category = await db.get(Category, body.category_id)
    if category is None or not category.is_active:
        raise ValidationFailedError(
            "Invalid category", details={"categoryId": str(body.category_id)}
        )

    campaign = Campaign(
        creator_id=user.id,
        category_id=category.id,
        title=body.title,
        tagline=body.tagline,
        description=body.description,
        story=body.story,
        main_image_url=body.main_image_url,
        video_url=body.video_url,
        funding_goal=body.funding_goal,
        minimum_pledge=body.minimum_pledge,
        funding_type=body.funding_type,
        location=body.location,
        duration_days=body.duration_days,
        status=CampaignStatus.DRAFT,
        reward_tiers=[
            RewardTier(
                amount=tier.amount,
                title=tier.title,
                description=tier.description,
                estimated_delivery_date=tier.estimated_delivery_date,
                quantity_limit=tier.quantity_limit,
                display_order=index,
            )
            for index, tier in enumerate(body.reward_tiers)
        ],
    )
    if body.publish:
        activate(campaign)

    # Creating a campaign turns on creator features for the account
    user.is_creator = True
    db.add(campaign)
    await db.flush()
    logger.info(
        "Campaign %s created by %s (status=%s, tiers=%d)",
        campaign.id,
        user.id,
        campaign.status,
        len(body.reward_tiers),
    )

    return CampaignDetailResponse(campaign=await _detail(db, campaign.id))


@router.put("/{campaign_id}", response_model=CampaignDetailResponse)
async def update_campaign(
    campaign_id: uuid.UUID,
    body: CampaignUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignDetailResponse:
    campaign = await _owned_campaign(db, campaign_id, user)
    if campaign.status != CampaignStatus.DRAFT:
        raise ConflictError("Only draft campaigns can be edited")

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailedError("No valid updates provided")

    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            raise ValidationFailedError(f"{field} cannot be empty")
        setattr(campaign, field, value)

    campaign.updated_at = utcnow()
    await db.flush()
    return CampaignDetailResponse(campaign=await _detail(db, campaign.id))
