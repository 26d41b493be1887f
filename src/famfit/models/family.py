"""Family roster models."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class Family(Base):
    """A household whose members share a points pool for family rewards."""

    __tablename__ = "families"

    family_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    members = relationship("FamilyMember", back_populates="family", order_by="FamilyMember.created_at")
    redeemed_rewards = relationship("RedeemedReward", back_populates="family")


class FamilyMember(Base):
    """Represents a person earning and spending points inside a family."""

    __tablename__ = "family_members"

    member_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    family_id = Column(Uuid(as_uuid=True), ForeignKey("families.family_id", ondelete="CASCADE"), nullable=False)
    display_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="member")
    status = Column(String, nullable=False, default="ACTIVE")
    created_at = Column(DateTime, default=utcnow, nullable=False)

    family = relationship("Family", back_populates="members")
    ledger_entries = relationship("PointsLedger", back_populates="member")
