"""Read-only balance aggregation over the points ledger."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from . import ledger_service
from .roster_service import list_active_member_ids


def get_member_points(session: Session, member_id: UUID) -> int:
    return ledger_service.sum_by_member(session, member_id)


def get_family_balances(session: Session, family_id: UUID) -> dict[UUID, int]:
    """Return current points for every active family member, in roster order."""

    member_ids = list_active_member_ids(session, family_id)
    return ledger_service.sum_by_members(session, member_ids)


def get_family_points(session: Session, family_id: UUID) -> int:
    """Sum of points over members belonging to the family at call time."""

    return sum(get_family_balances(session, family_id).values())
