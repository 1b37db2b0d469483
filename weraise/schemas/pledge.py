"""Pledge request/response schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from weraise.models.enums import FulfillmentStatus, PledgeStatus
from weraise.schemas.common import CamelRequest, PageMeta

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateOrderRequest(CamelRequest):
    campaign_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    reward_tier_id: uuid.UUID | None = None


class CaptureOrderRequest(CamelRequest):
    order_id: str = Field(..., min_length=1, max_length=255)
    pledge_id: uuid.UUID


class CancelOrderRequest(CamelRequest):
    pledge_id: uuid.UUID
    order_id: str | None = Field(None, max_length=255)


class PledgeUpdateRequest(CamelRequest):
    status: PledgeStatus | None = None
    fulfillment_status: FulfillmentStatus | None = None
    shipping_address: dict[str, Any] | None = None
    estimated_delivery_date: date | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PledgeResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    backer_id: uuid.UUID
    reward_tier_id: uuid.UUID | None = None
    amount: Decimal
    status: str
    fulfillment_status: str
    estimated_delivery_date: date | None = None
    shipping_address: dict[str, Any] | None = None
    paypal_order_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class CampaignBrief(BaseModel):
    id: uuid.UUID
    title: str
    status: str
    main_image_url: str | None = None
    end_date: datetime | None = None

    model_config = {"from_attributes": True}


class RewardTierBrief(BaseModel):
    id: uuid.UUID
    title: str
    amount: Decimal
    estimated_delivery_date: date | None = None

    model_config = {"from_attributes": True}


class BackerBrief(BaseModel):
    id: uuid.UUID
    full_name: str
    display_name: str | None = None
    email: str

    model_config = {"from_attributes": True}


class PledgeWithContext(PledgeResponse):
    campaign: CampaignBrief | None = None
    reward_tier: RewardTierBrief | None = None
    backer: BackerBrief | None = None


class CreateOrderResponse(BaseModel):
    order_id: str = Field(alias="orderID")
    pledge_id: uuid.UUID = Field(alias="pledgeId")
    approval_url: str = Field(alias="approvalUrl")

    model_config = {"populate_by_name": True}


class CaptureSummary(BaseModel):
    status: str
    amount: Decimal | None = None
    currency: str | None = None
    capture_id: str | None = None


class CaptureOrderResponse(BaseModel):
    message: str
    pledge: PledgeResponse
    capture_result: CaptureSummary = Field(alias="captureResult")

    model_config = {"populate_by_name": True}


class CancelOrderResponse(BaseModel):
    message: str
    pledge_id: uuid.UUID = Field(alias="pledgeId")

    model_config = {"populate_by_name": True}


class PledgeUpdateResponse(BaseModel):
    message: str
    pledge: PledgeResponse


class PledgeStatistics(BaseModel):
    total_raised: Decimal
    confirmed_pledges: int
    pending_pledges: int
    total_pledges: int


class CreatorPledgeStatistics(PledgeStatistics):
    pending_fulfillment: int


class PledgeHistoryResponse(BaseModel):
    pledges: list[PledgeWithContext]
    pagination: PageMeta


class CampaignPledgesResponse(BaseModel):
    pledges: list[PledgeWithContext]
    statistics: PledgeStatistics
    pagination: PageMeta


class CreatorPledgesResponse(BaseModel):
    pledges: list[PledgeWithContext]
    statistics: CreatorPledgeStatistics
    campaigns: list[CampaignBrief]
    pagination: PageMeta


class PledgeDetailResponse(BaseModel):
    pledge: PledgeWithContext


class PayPalConnectionResponse(BaseModel):
    connected: bool
    environment: str
    message: str
