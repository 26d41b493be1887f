"""Reward catalog model."""

import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, Integer, String, Uuid

from ..core.database import Base
from ..utils.datetime import utcnow


class RewardCategory(str, enum.Enum):
    """Who a reward is meant for."""

    FAMILY = "Family"
    INDIVIDUAL = "Individual"
    SPECIAL = "Special"


class RewardRarity(str, enum.Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


def _enum_values(members):
    return [member.value for member in members]


reward_category_type = SAEnum(RewardCategory, name="reward_category", values_callable=_enum_values)
reward_rarity_type = SAEnum(RewardRarity, name="reward_rarity", values_callable=_enum_values)


class Reward(Base):
    """Catalog entry that can be redeemed with points."""

    __tablename__ = "rewards"
    __table_args__ = (CheckConstraint("cost > 0", name="rewards_cost_positive"),)

    reward_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(String)
    cost = Column(Integer, nullable=False)
    category = Column(
        reward_category_type,
        nullable=False,
        default=RewardCategory.INDIVIDUAL,
    )
    rarity = Column(
        reward_rarity_type,
        nullable=False,
        default=RewardRarity.COMMON,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
