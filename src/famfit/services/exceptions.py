"""Errors raised by the points and redemption services."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class PointsRuleViolation(Exception):
    """Base error carrying a human readable detail and an HTTP status."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class ValidationError(PointsRuleViolation):
    """Raised for malformed input such as a zero delta or an empty member set."""


class NotFoundError(PointsRuleViolation):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=404)


class InsufficientPoints(PointsRuleViolation):
    """Raised when an affordability check fails before any write."""

    def __init__(
        self,
        detail: str,
        *,
        required: int,
        available: int | None = None,
        short_members: Sequence | None = None,
    ) -> None:
        super().__init__(detail, status_code=400)
        self.required = required
        self.available = available
        self.short_members = list(short_members or [])


class DistributionError(PointsRuleViolation):
    """Raised when a family cost cannot be spread across member balances."""

    def __init__(self, detail: str, *, remaining: int) -> None:
        super().__init__(detail, status_code=409)
        self.remaining = remaining


class RedemptionStateError(PointsRuleViolation):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=409)


class PersistenceFailure(PointsRuleViolation):
    """Raised when the database rejects or fails a store call."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=503)


class CompensationFailure(PointsRuleViolation):
    """Raised when a failed write phase could not be undone; needs manual reconciliation."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=500)


@contextmanager
def store_call(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors raised inside the block into ``PersistenceFailure``."""

    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("store call failed: %s", operation)
        raise PersistenceFailure(f"Could not {operation}; please try again.") from exc
