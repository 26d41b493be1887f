"""Points ledger model capturing balance movements."""

import enum

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class PointsSource(str, enum.Enum):
    """Origin of a ledger movement."""

    CHALLENGE_COMPLETION = "challenge_completion"
    MINI_GAME = "mini_game"
    STEP_BONUS = "step_bonus"
    REWARD_REDEMPTION = "reward_redemption"
    ADJUSTMENT = "adjustment"


class PointsLedger(Base):
    """Append-only ledger of point deltas for each family member."""

    __tablename__ = "points_ledger"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="points_ledger_delta_nonzero"),
        CheckConstraint(
            "source <> 'reward_redemption' OR delta < 0",
            name="points_ledger_redemption_sign",
        ),
    )

    ledger_entry_id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("family_members.member_id", ondelete="RESTRICT"), nullable=False)
    related_redemption = Column(
        Uuid(as_uuid=True),
        ForeignKey("redeemed_rewards.redeemed_reward_id", ondelete="SET NULL"),
    )
    delta = Column(Integer, nullable=False)
    source = Column(
        Enum(
            PointsSource,
            name="points_source",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )
    meta = Column(JSON)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    member = relationship("FamilyMember", back_populates="ledger_entries")
    redemption = relationship("RedeemedReward", back_populates="ledger_entries")
