"""Service layer exports."""

from . import (
	balance_service,
	change_feed,
	deduction_plan,
	ledger_service,
	redemption_record_service,
	redemption_service,
	roster_service,
)

__all__ = [
	"balance_service",
	"change_feed",
	"deduction_plan",
	"ledger_service",
	"redemption_record_service",
	"redemption_service",
	"roster_service",
]
