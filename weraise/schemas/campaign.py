"""Campaign and reward tier request/response schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from weraise.models.enums import CampaignStatus, FundingType
from weraise.schemas.common import CamelRequest, PageMeta


class RewardTierCreate(CamelRequest):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    estimated_delivery_date: date | None = None
    quantity_limit: int | None = Field(None, ge=1)


class CampaignCreateRequest(CamelRequest):
    title: str = Field(..., min_length=1, max_length=255)
    tagline: str | None = Field(None, max_length=500)
    description: str = Field(..., min_length=1, max_length=2000)
    story: str | None = None
    category_id: uuid.UUID
    funding_goal: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    minimum_pledge: Decimal = Field(Decimal("1.00"), gt=0, max_digits=10, decimal_places=2)
    funding_type: FundingType
    duration_days: int = Field(..., ge=1, le=90)
    location: str | None = Field(None, max_length=255)
    main_image_url: str | None = Field(None, max_length=500)
    video_url: str | None = Field(None, max_length=500)
    reward_tiers: list[RewardTierCreate] = Field(..., min_length=1)
    publish: bool = True

    @model_validator(mode="after")
    def _tiers_meet_minimum(self) -> "CampaignCreateRequest":
        for tier in self.reward_tiers:
            if tier.amount < self.minimum_pledge:
                raise ValueError(
                    f"Reward tier '{tier.title}' is below the minimum pledge "
                    f"of ${self.minimum_pledge}"
                )
        return self


class CampaignUpdateRequest(CamelRequest):
    title: str | None = Field(None, min_length=1, max_length=255)
    tagline: str | None = Field(None, max_length=500)
    description: str | None = Field(None, min_length=1, max_length=2000)
    story: str | None = None
    location: str | None = Field(None, max_length=255)
    main_image_url: str | None = Field(None, max_length=500)
    video_url: str | None = Field(None, max_length=500)
    funding_goal: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    minimum_pledge: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    duration_days: int | None = Field(None, ge=1, le=90)


class CampaignStatusRequest(BaseModel):
    status: CampaignStatus


class RewardTierResponse(BaseModel):
    id: uuid.UUID
    amount: Decimal
    title: str
    description: str
    estimated_delivery_date: date | None = None
    quantity_limit: int | None = None
    quantity_claimed: int
    quantity_remaining: int | None = None
    is_sold_out: bool
    display_order: int

    model_config = {"from_attributes": True}


class CampaignResponse(BaseModel):
    id: uuid.UUID
    creator_id: uuid.UUID
    category_id: uuid.UUID
    title: str
    tagline: str | None = None
    description: str
    story: str | None = None
    main_image_url: str | None = None
    video_url: str | None = None
    funding_goal: Decimal
    minimum_pledge: Decimal
    funding_type: str
    status: str
    location: str | None = None
    duration_days: int
    start_date: datetime | None = None
    end_date: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CampaignSummary(CampaignResponse):
    total_raised: Decimal = Decimal("0.00")
    backer_count: int = 0
    funding_percentage: int = 0
    days_remaining: int = 0
    category_name: str | None = None
    creator_name: str | None = None


class CampaignDetail(CampaignSummary):
    reward_tiers: list[RewardTierResponse] = []


class CampaignListResponse(BaseModel):
    campaigns: list[CampaignSummary]
    pagination: PageMeta


class CampaignDetailResponse(BaseModel):
    campaign: CampaignDetail


class CampaignStatusResponse(BaseModel):
    id: uuid.UUID
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    published_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
