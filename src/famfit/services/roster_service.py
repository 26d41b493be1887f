"""Family roster lookups used by balance and redemption services."""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Family, FamilyMember
from .exceptions import NotFoundError, store_call

ACTIVE_STATUS = "ACTIVE"


def ensure_family(session: Session, family_id: UUID) -> Family:
    stmt = select(Family).where(Family.family_id == family_id)
    with store_call("load family"):
        family = session.execute(stmt).scalar_one_or_none()
    if family is None:
        raise NotFoundError(f"Family {family_id} not found")
    return family


def lock_family(session: Session, family_id: UUID) -> Family:
    """Take a row lock on the family, serialising redemptions until the transaction ends."""

    stmt = select(Family).where(Family.family_id == family_id).with_for_update(nowait=False)
    with store_call("lock family"):
        family = session.execute(stmt).scalar_one_or_none()
    if family is None:
        raise NotFoundError(f"Family {family_id} not found")
    return family


def ensure_member(session: Session, member_id: UUID) -> FamilyMember:
    stmt = select(FamilyMember).where(FamilyMember.member_id == member_id)
    with store_call("load family member"):
        member = session.execute(stmt).scalar_one_or_none()
    if member is None:
        raise NotFoundError(f"Family member {member_id} not found")
    return member


def list_active_members(session: Session, family_id: UUID) -> Sequence[FamilyMember]:
    stmt = (
        select(FamilyMember)
        .where(FamilyMember.family_id == family_id, FamilyMember.status == ACTIVE_STATUS)
        .order_by(FamilyMember.created_at.asc(), FamilyMember.member_id.asc())
    )
    with store_call("load family roster"):
        return session.execute(stmt).scalars().all()


def list_active_member_ids(session: Session, family_id: UUID) -> Sequence[UUID]:
    """Return ids of members currently belonging to the family, oldest first."""

    stmt = (
        select(FamilyMember.member_id)
        .where(FamilyMember.family_id == family_id, FamilyMember.status == ACTIVE_STATUS)
        .order_by(FamilyMember.created_at.asc(), FamilyMember.member_id.asc())
    )
    with store_call("load family roster"):
        return session.execute(stmt).scalars().all()
