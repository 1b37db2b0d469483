"""Pledge endpoints: PayPal checkout flow, manual updates and listings.

POST /pledges/paypal/create-order
POST /pledges/paypal/capture-order
POST /pledges/paypal/cancel-order
GET  /pledges/paypal/test
GET  /pledges/history
GET  /pledges/campaign/{campaign_id}
GET  /pledges/creator/all
GET  /pledges/{pledge_id}
PUT  /pledges/{pledge_id}
"""

import uuid
from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import Select, and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from weraise.core.config import settings
from weraise.core.dependencies import (
    get_current_user,
    get_db,
    get_notifier,
    get_payment_provider,
    require_creator,
)
from weraise.core.exceptions import ForbiddenError, NotFoundError
from weraise.models.campaign import Campaign
from weraise.models.enums import FulfillmentStatus, PledgeStatus
from weraise.models.pledge import Pledge
from weraise.models.user import User
from weraise.schemas.common import PageMeta
from weraise.schemas.pledge import (
    CampaignBrief,
    CampaignPledgesResponse,
    CancelOrderRequest,
    CancelOrderResponse,
    CaptureOrderRequest,
    CaptureOrderResponse,
    CaptureSummary,
    CreateOrderRequest,
    CreateOrderResponse,
    CreatorPledgesResponse,
    CreatorPledgeStatistics,
    PayPalConnectionResponse,
    PledgeDetailResponse,
    PledgeHistoryResponse,
    PledgeResponse,
    PledgeStatistics,
    PledgeUpdateRequest,
    PledgeUpdateResponse,
    PledgeWithContext,
)
from weraise.services import pledge_workflow
from weraise.services.notifications import Notifier
from weraise.services.paypal import PaymentProvider

router = APIRouter()

HISTORY_MAX_LIMIT = 50
CREATOR_MAX_LIMIT = 100

_AWAITING_FULFILLMENT = (
    FulfillmentStatus.PENDING,
    FulfillmentStatus.PROCESSING,
    FulfillmentStatus.DELAYED,
)


def _with_context(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Pledge.campaign),
        selectinload(Pledge.reward_tier),
        selectinload(Pledge.backer),
    )


def _to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


async def _page(
    db: AsyncSession, filters: list, page: int, limit: int
) -> tuple[list[PledgeWithContext], int]:
    total = await db.scalar(select(func.count(Pledge.id)).where(*filters))
    stmt = _with_context(
        select(Pledge)
        .where(*filters)
        .order_by(Pledge.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(stmt)
    pledges = [PledgeWithContext.model_validate(p) for p in result.scalars().all()]
    return pledges, total or 0


async def _statistics(db: AsyncSession, filters: list) -> dict:
    confirmed = Pledge.status == PledgeStatus.CONFIRMED
    row = (
        await db.execute(
            select(
                func.count(Pledge.id),
                func.coalesce(func.sum(case((confirmed, Pledge.amount), else_=0)), 0),
                func.count(case((confirmed, Pledge.id))),
                func.count(case((Pledge.status == PledgeStatus.PENDING, Pledge.id))),
                func.count(
                    case(
                        (
                            and_(
                                confirmed,
                                Pledge.fulfillment_status.in_(_AWAITING_FULFILLMENT),
                            ),
                            Pledge.id,
                        )
                    )
                ),
            ).where(*filters)
        )
    ).one()
    total, raised, confirmed_count, pending_count, awaiting = row
    return {
        "total_raised": _to_money(raised),
        "confirmed_pledges": confirmed_count,
        "pending_pledges": pending_count,
        "total_pledges": total,
        "pending_fulfillment": awaiting,
    }


# ---------------------------------------------------------------------------
# PayPal checkout
# ---------------------------------------------------------------------------


@router.post("/paypal/create-order", response_model=CreateOrderResponse, status_code=201)
async def create_order(
    body: CreateOrderRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> CreateOrderResponse:
    opened = await pledge_workflow.open_pledge_order(
        db,
        provider,
        backer=user,
        campaign_id=body.campaign_id,
        amount=body.amount,
        reward_tier_id=body.reward_tier_id,
    )
    return CreateOrderResponse(
        order_id=opened.order_id,
        pledge_id=opened.pledge_id,
        approval_url=opened.approval_url,
    )


@router.post("/paypal/capture-order", response_model=CaptureOrderResponse)
async def capture_order(
    body: CaptureOrderRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
    notifier: Notifier = Depends(get_notifier),
) -> CaptureOrderResponse:
    captured = await pledge_workflow.capture_pledge_order(
        db,
        provider,
        backer=user,
        order_id=body.order_id,
        pledge_id=body.pledge_id,
    )
    # The receipt only goes out for a pledge that is already committed
    await db.commit()
    background_tasks.add_task(
        pledge_workflow.send_pledge_confirmation, notifier, captured.receipt
    )

    capture = captured.capture
    return CaptureOrderResponse(
        message="Payment captured successfully",
        pledge=PledgeResponse.model_validate(captured.pledge),
        capture_result=CaptureSummary(
            status=capture.status,
            amount=capture.amount,
            currency=capture.currency,
            capture_id=capture.capture_id,
        ),
    )


@router.post("/paypal/cancel-order", response_model=CancelOrderResponse)
async def cancel_order(
    body: CancelOrderRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> CancelOrderResponse:
    pledge_id = await pledge_workflow.cancel_pledge_order(
        db, provider, backer=user, pledge_id=body.pledge_id
    )
    return CancelOrderResponse(message="Payment cancelled successfully", pledge_id=pledge_id)


@router.get("/paypal/test", response_model=PayPalConnectionResponse)
async def test_paypal_connection(
    user: User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> PayPalConnectionResponse:
    connected = await provider.check_connection()
    return PayPalConnectionResponse(
        connected=connected,
        environment=settings.PAYPAL_ENVIRONMENT,
        message="PayPal connection successful" if connected else "PayPal connection failed",
    )


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.get("/history", response_model=PledgeHistoryResponse)
async def pledge_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=HISTORY_MAX_LIMIT),
    status: PledgeStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PledgeHistoryResponse:
    filters = [Pledge.backer_id == user.id]
    if status:
        filters.append(Pledge.status == status)

    pledges, total = await _page(db, filters, page, limit)
    return PledgeHistoryResponse(
        pledges=pledges, pagination=PageMeta(page=page, limit=limit, total=total)
    )


@router.get("/campaign/{campaign_id}", response_model=CampaignPledgesResponse)
async def campaign_pledges(
    campaign_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=CREATOR_MAX_LIMIT),
    status: PledgeStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignPledgesResponse:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    if campaign.creator_id != user.id:
        raise ForbiddenError("You can only view pledges for your own campaigns")

    filters = [Pledge.campaign_id == campaign.id]
    stats = await _statistics(db, filters)
    if status:
        filters.append(Pledge.status == status)

    pledges, total = await _page(db, filters, page, limit)
    return CampaignPledgesResponse(
        pledges=pledges,
        statistics=PledgeStatistics(**stats),
        pagination=PageMeta(page=page, limit=limit, total=total),
    )


@router.get("/creator/all", response_model=CreatorPledgesResponse)
async def creator_pledges(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=CREATOR_MAX_LIMIT),
    status: PledgeStatus | None = Query(None),
    campaign_id: uuid.UUID | None = Query(None, alias="campaignId"),
    user: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db),
) -> CreatorPledgesResponse:
    result = await db.execute(
        select(Campaign).where(Campaign.creator_id == user.id).order_by(Campaign.created_at.desc())
    )
    campaigns = result.scalars().all()
    owned_ids = [c.id for c in campaigns]

    filters = [Pledge.campaign_id.in_(owned_ids)]
    stats = await _statistics(db, filters)
    if campaign_id is not None:
        filters.append(Pledge.campaign_id == campaign_id)
    if status:
        filters.append(Pledge.status == status)

    pledges, total = await _page(db, filters, page, limit)
    return CreatorPledgesResponse(
        pledges=pledges,
        statistics=CreatorPledgeStatistics(**stats),
        campaigns=[CampaignBrief.model_validate(c) for c in campaigns],
        pagination=PageMeta(page=page, limit=limit, total=total),
    )


# ---------------------------------------------------------------------------
# Single pledge
# ---------------------------------------------------------------------------


@router.get("/{pledge_id}", response_model=PledgeDetailResponse)
async def get_pledge(
    pledge_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PledgeDetailResponse:
    result = await db.execute(_with_context(select(Pledge).where(Pledge.id == pledge_id)))
    pledge = result.scalar_one_or_none()
    if pledge is None:
        raise NotFoundError("Pledge not found")
    if pledge.backer_id != user.id and pledge.campaign.creator_id != user.id:
        raise ForbiddenError("You do not have permission to view this pledge")

    return PledgeDetailResponse(pledge=PledgeWithContext.model_validate(pledge))


@router.put("/{pledge_id}", response_model=PledgeUpdateResponse)
async def update_pledge(
    pledge_id: uuid.UUID,
    body: PledgeUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PledgeUpdateResponse:
    pledge = await pledge_workflow.update_pledge(db, user=user, pledge_id=pledge_id, changes=body)
    return PledgeUpdateResponse(
        message="Pledge updated successfully", pledge=PledgeResponse.model_validate(pledge)
    )
