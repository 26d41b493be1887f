"""Pydantic schemas for redemption workflows."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import RedeemedRewardStatus, RewardCategory, RewardRarity


class FamilyRedemptionCreate(BaseModel):
    """Incoming payload for a reward paid from the family pool."""

    reward_id: UUID


class IndividualRedemptionCreate(BaseModel):
    """Incoming payload for a reward each selected member pays in full."""

    reward_id: UUID
    member_ids: List[UUID] = Field(..., min_length=1, description="Members redeeming their own copy.")


class DeductionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: UUID
    amount: int = Field(..., gt=0)


class RedemptionResultRead(BaseModel):
    """Response returned after processing a redemption."""

    success: bool
    message: str
    deductions: List[DeductionRead] = Field(default_factory=list)
    redeemed_reward_id: Optional[UUID] = None


class RedeemedRewardRead(BaseModel):
    """Represents a redemption record with its status as of now."""

    model_config = ConfigDict(from_attributes=True)

    redeemed_reward_id: UUID
    family_id: UUID
    reward_id: Optional[UUID] = None
    reward_title: str
    reward_description: Optional[str] = None
    reward_cost: int
    reward_category: RewardCategory
    reward_rarity: RewardRarity
    redeemed_by_members: List[UUID]
    redeemed_at: datetime
    expires_at: datetime
    used_at: Optional[datetime] = None
    status: RedeemedRewardStatus
    expiring_soon: bool = False
