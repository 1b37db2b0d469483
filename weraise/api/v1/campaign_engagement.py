"""Creator updates, backer comments and shipping notices for a campaign.

POST /campaigns/{id}/update          owner posts a progress update
GET  /campaigns/{id}/updates         public updates, newest first
GET  /campaigns/{id}/comments        public comments, oldest first
POST /campaigns/{id}/comments        any signed-in user comments
POST /campaigns/{id}/send-tracking   owner emails tracking details to confirmed backers
"""

import asyncio
import logging
import uuid
from urllib.parse import quote_plus

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from weraise.core.dependencies import get_current_user, get_db, get_notifier, require_creator
from weraise.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from weraise.models.campaign import Campaign
from weraise.models.campaign_post import CampaignComment, CampaignUpdate
from weraise.models.enums import PledgeStatus
from weraise.models.pledge import Pledge
from weraise.models.user import User
from weraise.schemas.community import (
    CampaignUpdateCreate,
    CampaignUpdateCreatedResponse,
    CampaignUpdateListResponse,
    CampaignUpdateResponse,
    CommentAuthor,
    CommentCampaign,
    CommentCreate,
    CommentCreatedResponse,
    CommentListResponse,
    CommentResponse,
    TrackingDelivery,
    TrackingRequest,
    TrackingResponse,
    TrackingResults,
)
from weraise.services.notifications import Notifier, RewardTrackingNotice

logger = logging.getLogger(__name__)

router = APIRouter()

ANONYMOUS = "Anonymous User"


async def _campaign(db: AsyncSession, campaign_id: uuid.UUID) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    return campaign


def _comment_out(comment: CampaignComment, author: User) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        user=CommentAuthor(
            id=author.id,
            display_name=author.public_name or ANONYMOUS,
        ),
    )


def default_tracking_url(carrier_name: str, tracking_number: str) -> str:
    return (
        "https://www.google.com/search?q="
        f"{quote_plus(carrier_name)}+tracking+{quote_plus(tracking_number)}"
    )


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


@router.post(
    "/{campaign_id}/update",
    response_model=CampaignUpdateCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_campaign_update(
    campaign_id: uuid.UUID,
    body: CampaignUpdateCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignUpdateCreatedResponse:
    campaign = await _campaign(db, campaign_id)
    if campaign.creator_id != user.id:
        raise ForbiddenError("You can only create updates for your own campaigns")

    update = CampaignUpdate(
        campaign_id=campaign.id,
        title=body.title,
        content=body.content,
        image_url=body.image_url,
        is_public=body.is_public,
    )
    db.add(update)
    await db.flush()
    await db.refresh(update)

    logger.info("Campaign %s update posted: %s", campaign.id, update.id)
    return CampaignUpdateCreatedResponse(
        message="Campaign update created successfully",
        update=CampaignUpdateResponse.model_validate(update),
    )


@router.get("/{campaign_id}/updates", response_model=CampaignUpdateListResponse)
async def list_campaign_updates(
    campaign_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> CampaignUpdateListResponse:
    await _campaign(db, campaign_id)
    result = await db.execute(
        select(CampaignUpdate)
        .where(CampaignUpdate.campaign_id == campaign_id, CampaignUpdate.is_public.is_(True))
        .order_by(CampaignUpdate.created_at.desc())
    )
    return CampaignUpdateListResponse(
        updates=[CampaignUpdateResponse.model_validate(u) for u in result.scalars().all()]
    )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/{campaign_id}/comments", response_model=CommentListResponse)
async def list_comments(
    campaign_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> CommentListResponse:
    campaign = await _campaign(db, campaign_id)
    result = await db.execute(
        select(CampaignComment)
        .options(selectinload(CampaignComment.user))
        .where(CampaignComment.campaign_id == campaign_id, CampaignComment.is_public.is_(True))
        .order_by(CampaignComment.created_at.asc())
    )
    return CommentListResponse(
        comments=[_comment_out(c, c.user) for c in result.scalars().all()],
        campaign=CommentCampaign(id=campaign.id, title=campaign.title),
    )


@router.post(
    "/{campaign_id}/comments",
    response_model=CommentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_comment(
    campaign_id: uuid.UUID,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CommentCreatedResponse:
    campaign = await _campaign(db, campaign_id)
    comment = CampaignComment(
        campaign_id=campaign.id, user_id=user.id, content=body.content, is_public=True
    )
    db.add(comment)
    await db.flush()
    await db.refresh(comment)

    return CommentCreatedResponse(
        message="Comment created successfully", comment=_comment_out(comment, user)
    )


# ---------------------------------------------------------------------------
# Reward shipping
# ---------------------------------------------------------------------------


@router.post("/{campaign_id}/send-tracking", response_model=TrackingResponse)
async def send_tracking(
    campaign_id: uuid.UUID,
    body: TrackingRequest,
    user: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> TrackingResponse:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None or campaign.creator_id != user.id:
        raise NotFoundError("Campaign not found or you are not the creator")

    result = await db.execute(
        select(Pledge)
        .options(selectinload(Pledge.backer))
        .where(Pledge.campaign_id == campaign.id, Pledge.status == PledgeStatus.CONFIRMED)
        .order_by(Pledge.created_at.asc())
    )
    pledges = result.scalars().all()
    if not pledges:
        raise ConflictError("No confirmed pledges found for this campaign")

    tracking_url = body.tracking_url or default_tracking_url(
        body.carrier_name, body.tracking_number
    )

    async def deliver(pledge: Pledge) -> TrackingDelivery:
        backer = pledge.backer
        notice = RewardTrackingNotice(
            recipient_email=backer.email,
            backer_name=backer.public_name,
            campaign_title=campaign.title,
            tracking_number=body.tracking_number,
            carrier_name=body.carrier_name,
            tracking_url=tracking_url,
        )
        try:
            await notifier.send_reward_tracking(notice)
        except Exception as exc:
            logger.exception("Failed to send tracking email to %s", backer.email)
            return TrackingDelivery(email=backer.email, success=False, error=str(exc))
        return TrackingDelivery(email=backer.email, success=True)

    details = list(await asyncio.gather(*(deliver(p) for p in pledges)))
    successful = sum(1 for d in details if d.success)

    logger.info(
        "Tracking emails for campaign %s: %d sent, %d failed",
        campaign.id,
        successful,
        len(details) - successful,
    )
    return TrackingResponse(
        message=f"Tracking emails sent to {successful} backers",
        results=TrackingResults(
            total=len(details),
            successful=successful,
            failed=len(details) - successful,
            details=details,
        ),
    )
