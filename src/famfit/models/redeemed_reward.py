"""Redeemed reward record model."""

import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow
from .reward import _enum_values, reward_category_type, reward_rarity_type


class RedeemedRewardStatus(str, enum.Enum):
    """Possible redeemed reward states."""

    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class RedeemedReward(Base):
    """A completed redemption with the reward details frozen at redemption time."""

    __tablename__ = "redeemed_rewards"

    redeemed_reward_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    family_id = Column(Uuid(as_uuid=True), ForeignKey("families.family_id", ondelete="CASCADE"), nullable=False)
    reward_id = Column(Uuid(as_uuid=True), ForeignKey("rewards.reward_id", ondelete="SET NULL"))
    reward_title = Column(String, nullable=False)
    reward_description = Column(String)
    reward_cost = Column(Integer, nullable=False)
    reward_category = Column(reward_category_type, nullable=False)
    reward_rarity = Column(reward_rarity_type, nullable=False)
    redeemed_by_members = Column(JSON, nullable=False, default=list)
    redeemed_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    status = Column(
        SAEnum(RedeemedRewardStatus, name="redeemed_reward_status", values_callable=_enum_values),
        nullable=False,
        default=RedeemedRewardStatus.ACTIVE,
    )
    used_at = Column(DateTime)

    family = relationship("Family", back_populates="redeemed_rewards")
    ledger_entries = relationship("PointsLedger", back_populates="redemption")
