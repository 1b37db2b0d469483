"""Aggregate all v1 sub-routers."""

from fastapi import APIRouter

from weraise.api.v1.auth import router as auth_router
from weraise.api.v1.campaign_engagement import router as campaign_engagement_router
from weraise.api.v1.campaigns import router as campaigns_router
from weraise.api.v1.categories import router as categories_router
from weraise.api.v1.health import router as health_router
from weraise.api.v1.pledges import router as pledges_router
from weraise.api.v1.status_transitions import router as status_transitions_router
from weraise.api.v1.users import router as users_router

api_v1_router = APIRouter()

api_v1_router.include_router(health_router, tags=["health"])
api_v1_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(users_router, prefix="/users", tags=["users"])
api_v1_router.include_router(categories_router, prefix="/categories", tags=["categories"])
api_v1_router.include_router(campaigns_router, prefix="/campaigns", tags=["campaigns"])
api_v1_router.include_router(
    status_transitions_router, prefix="/campaigns", tags=["status-transitions"]
)
api_v1_router.include_router(
    campaign_engagement_router, prefix="/campaigns", tags=["campaign-engagement"]
)
api_v1_router.include_router(pledges_router, prefix="/pledges", tags=["pledges"])
