"""Public schema exports."""

from .points import FamilyPoints, LedgerEntryRead, MemberPoints, PointsAward
from .redemption import (
	DeductionRead,
	FamilyRedemptionCreate,
	IndividualRedemptionCreate,
	RedeemedRewardRead,
	RedemptionResultRead,
)

__all__ = [
	"DeductionRead",
	"FamilyPoints",
	"FamilyRedemptionCreate",
	"IndividualRedemptionCreate",
	"LedgerEntryRead",
	"MemberPoints",
	"PointsAward",
	"RedeemedRewardRead",
	"RedemptionResultRead",
]
