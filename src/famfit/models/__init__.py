"""SQLAlchemy models for FamFit."""

from .family import Family, FamilyMember
from .points_ledger import PointsLedger, PointsSource
from .redeemed_reward import RedeemedReward, RedeemedRewardStatus
from .reward import Reward, RewardCategory, RewardRarity

__all__ = [
    "Family",
    "FamilyMember",
    "PointsLedger",
    "PointsSource",
    "RedeemedReward",
    "RedeemedRewardStatus",
    "Reward",
    "RewardCategory",
    "RewardRarity",
]
