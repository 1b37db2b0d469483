"""Current-user profile endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from weraise.core.dependencies import get_current_user, get_db
from weraise.core.exceptions import ValidationFailedError
from weraise.models.user import User
from weraise.schemas.user import UserResponse, UserUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailedError("No valid updates provided")
    if changes.get("full_name") is None and "full_name" in changes:
        raise ValidationFailedError("Full name cannot be empty")

    for field, value in changes.items():
        setattr(user, field, value)

    await db.flush()
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.post("/me/become-creator", response_model=UserResponse)
async def become_creator(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    if not user.is_creator:
        user.is_creator = True
        await db.flush()
        await db.refresh(user)
        logger.info("User %s enabled creator features", user.id)
    return UserResponse.model_validate(user)
