"""FamFit points ledger and reward redemption service."""
