"""Campaign updates, comments and reward tracking schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from weraise.schemas.common import CamelRequest

URL_PATTERN = r"^https?://\S+$"


class CampaignUpdateCreate(CamelRequest):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)
    image_url: str | None = Field(None, max_length=500, pattern=URL_PATTERN)
    is_public: bool = True


class CampaignUpdateResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    title: str
    content: str
    image_url: str | None = None
    is_public: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CampaignUpdateCreatedResponse(BaseModel):
    message: str
    update: CampaignUpdateResponse


class CampaignUpdateListResponse(BaseModel):
    updates: list[CampaignUpdateResponse]


class CommentCreate(CamelRequest):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)


class CommentAuthor(BaseModel):
    id: uuid.UUID
    display_name: str


class CommentResponse(BaseModel):
    id: uuid.UUID
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    user: CommentAuthor


class CommentCampaign(BaseModel):
    id: uuid.UUID
    title: str


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    campaign: CommentCampaign


class CommentCreatedResponse(BaseModel):
    message: str
    comment: CommentResponse


class TrackingRequest(CamelRequest):
    model_config = ConfigDict(str_strip_whitespace=True)

    tracking_number: str = Field(..., min_length=1, max_length=100)
    carrier_name: str = Field(..., min_length=1, max_length=100)
    tracking_url: str | None = Field(None, max_length=500, pattern=URL_PATTERN)


class TrackingDelivery(BaseModel):
    email: str
    success: bool
    error: str | None = None


class TrackingResults(BaseModel):
    total: int
    successful: int
    failed: int
    details: list[TrackingDelivery]


class TrackingResponse(BaseModel):
    message: str
    results: TrackingResults
