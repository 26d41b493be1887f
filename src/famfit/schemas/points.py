"""Pydantic schemas for points ledger endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import PointsSource


class PointsAward(BaseModel):
    """Request body for recording earned points."""

    member_id: UUID
    delta: int = Field(..., gt=0, description="Points earned by the member.")
    source: PointsSource = Field(..., description="Event that earned the points.")
    meta: Optional[Dict[str, Any]] = Field(None, description="Free-form audit payload.")

    @field_validator("source")
    @classmethod
    def _earning_source_only(cls, value: PointsSource) -> PointsSource:
        if value is PointsSource.REWARD_REDEMPTION:
            raise ValueError("reward_redemption entries are written by redemptions only")
        return value


class LedgerEntryRead(BaseModel):
    """One ledger movement."""

    model_config = ConfigDict(from_attributes=True)

    ledger_entry_id: int
    member_id: UUID
    delta: int
    source: PointsSource
    meta: Optional[Dict[str, Any]] = None
    related_redemption: Optional[UUID] = None
    created_at: datetime


class MemberPoints(BaseModel):
    member_id: UUID
    points: int


class FamilyPoints(BaseModel):
    """Family total with the per-member balances it was summed from."""

    family_id: UUID
    points: int
    members: List[MemberPoints]
