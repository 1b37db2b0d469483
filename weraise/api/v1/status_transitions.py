"""Campaign status transition endpoint.

PATCH /campaigns/{id}/status

Owner only. Allowed moves come from ``CAMPAIGN_TRANSITIONS``:
draft -> pending | active | cancelled, pending -> active | cancelled,
active -> completed | failed | cancelled. Everything else is terminal.
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from weraise.api.v1.campaigns import activate
from weraise.core.dependencies import get_current_user, get_db
from weraise.core.exceptions import ForbiddenError, NotFoundError
from weraise.db.base import utcnow
from weraise.models.campaign import Campaign
from weraise.models.enums import CampaignStatus
from weraise.models.user import User
from weraise.schemas.campaign import CampaignStatusRequest, CampaignStatusResponse
from weraise.services.transitions import check_campaign_transition

logger = logging.getLogger(__name__)

router = APIRouter()


@router.patch("/{campaign_id}/status", response_model=CampaignStatusResponse)
async def transition_campaign_status(
    campaign_id: uuid.UUID,
    body: CampaignStatusRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CampaignStatusResponse:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    if campaign.creator_id != user.id:
        raise ForbiddenError("You can only modify your own campaigns")

    previous = campaign.status
    check_campaign_transition(previous, body.status)

    if body.status == CampaignStatus.ACTIVE:
        activate(campaign)
    else:
        campaign.status = body.status
    campaign.updated_at = utcnow()

    await db.flush()
    await db.refresh(campaign)
    logger.info("Campaign %s moved from %s to %s", campaign.id, previous, campaign.status)

    return CampaignStatusResponse.model_validate(campaign)
