"""Append-only points ledger storage and summation."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import PointsLedger, PointsSource
from .change_feed import LEDGER_TABLE, ChangeEvent, stage_change
from .exceptions import ValidationError, store_call
from .roster_service import ensure_member

logger = logging.getLogger(__name__)


def append(
    session: Session,
    *,
    member_id: UUID,
    delta: int,
    source: PointsSource,
    meta: Optional[Mapping[str, Any]] = None,
    related_redemption: Optional[UUID] = None,
    notify: bool = True,
) -> PointsLedger:
    """Record one signed point movement for a member.

    No affordability check is made here; callers spending points must check
    balances first. With ``notify`` set a ledger change for the member's
    family is published once the transaction commits.
    """

    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("Point delta must be an integer.")
    if delta == 0:
        raise ValidationError("Point delta must be non-zero.")
    try:
        source = PointsSource(source)
    except ValueError as exc:
        raise ValidationError(f"Unknown points source {source!r}.") from exc

    member = ensure_member(session, member_id)

    entry = PointsLedger(
        member_id=member.member_id,
        delta=delta,
        source=source,
        meta=dict(meta) if meta else None,
        related_redemption=related_redemption,
    )
    with store_call("record points"):
        session.add(entry)
        session.flush()

    if notify:
        stage_change(session, ChangeEvent(family_id=member.family_id, table=LEDGER_TABLE))

    logger.debug("ledger entry %s: member=%s delta=%s source=%s", entry.ledger_entry_id, member_id, delta, entry.source.value)
    return entry


def sum_by_member(session: Session, member_id: UUID) -> int:
    """Return the member's balance; 0 when the member has no entries."""

    stmt = select(func.coalesce(func.sum(PointsLedger.delta), 0)).where(PointsLedger.member_id == member_id)
    with store_call("read member points"):
        return int(session.execute(stmt).scalar_one())


def sum_by_members(session: Session, member_ids: Iterable[UUID]) -> dict[UUID, int]:
    """Batch form of ``sum_by_member``; every requested id appears in the result."""

    ids = list(dict.fromkeys(member_ids))
    if not ids:
        return {}

    stmt = (
        select(PointsLedger.member_id, func.coalesce(func.sum(PointsLedger.delta), 0))
        .where(PointsLedger.member_id.in_(ids))
        .group_by(PointsLedger.member_id)
    )
    with store_call("read member points"):
        rows = session.execute(stmt).all()

    totals = {member_id: 0 for member_id in ids}
    for member_id, total in rows:
        totals[member_id] = int(total)
    return totals


def list_entries(
    session: Session,
    *,
    member_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[PointsLedger]:
    """Return a member's ledger entries, newest first."""

    stmt = (
        select(PointsLedger)
        .where(PointsLedger.member_id == member_id)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.ledger_entry_id.desc())
        .offset(offset)
        .limit(limit)
    )
    with store_call("list ledger entries"):
        return session.execute(stmt).scalars().all()
