from weraise.models.campaign import Campaign
from weraise.models.campaign_post import CampaignComment, CampaignUpdate
from weraise.models.category import Category
from weraise.models.pledge import Pledge
from weraise.models.reward_tier import RewardTier
from weraise.models.transaction import Transaction
from weraise.models.user import User

__all__ = [
    "Campaign",
    "CampaignComment",
    "CampaignUpdate",
    "Category",
    "Pledge",
    "RewardTier",
    "Transaction",
    "User",
]
