"""User schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from weraise.schemas.common import CamelRequest


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    display_name: str | None = None
    is_creator: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdateRequest(CamelRequest):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    display_name: str | None = Field(None, max_length=100)


class UserSummary(BaseModel):
    id: uuid.UUID
    full_name: str
    display_name: str | None = None
    email: str

    model_config = {"from_attributes": True}
