"""Points ledger and balance endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import FamilyPoints, LedgerEntryRead, MemberPoints, PointsAward
from ...services import balance_service, ledger_service, roster_service
from ...services.exceptions import PointsRuleViolation, store_call

router = APIRouter(tags=["points"])


@router.post(
    "/points",
    response_model=LedgerEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Award points to a member",
    responses={
        201: {
            "description": "Ledger entry recorded",
            "content": {
                "application/json": {
                    "example": {
                        "ledger_entry_id": 42,
                        "member_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",
                        "delta": 50,
                        "source": "challenge_completion",
                        "meta": {"challenge_id": "c-10k-steps"},
                        "related_redemption": None,
                        "created_at": "2025-11-12T10:15:30",
                    }
                }
            },
        },
        400: {"description": "Invalid delta or source"},
        404: {"description": "Member not found"},
    },
)
def award_points(
    payload: PointsAward,
    db: Session = Depends(get_db),
) -> LedgerEntryRead:
    """Record points earned by a member.

    Example request body::

        {
            "member_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",
            "delta": 50,
            "source": "challenge_completion",
            "meta": {"challenge_id": "c-10k-steps"}
        }
    """

    try:
        entry = ledger_service.append(
            db,
            member_id=payload.member_id,
            delta=payload.delta,
            source=payload.source,
            meta=payload.meta,
        )
        with store_call("save the points entry"):
            db.commit()
            db.refresh(entry)
        return entry
    except PointsRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/members/{member_id}/points", response_model=MemberPoints, summary="Current member balance")
def get_member_points(member_id: UUID, db: Session = Depends(get_db)) -> MemberPoints:
    try:
        roster_service.ensure_member(db, member_id)
        return MemberPoints(member_id=member_id, points=balance_service.get_member_points(db, member_id))
    except PointsRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/members/{member_id}/ledger", response_model=List[LedgerEntryRead], summary="Member ledger history")
def list_member_ledger(
    member_id: UUID,
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[LedgerEntryRead]:
    """Return the member's ledger entries, newest first."""

    try:
        roster_service.ensure_member(db, member_id)
        return list(ledger_service.list_entries(db, member_id=member_id, limit=limit, offset=offset))
    except PointsRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/families/{family_id}/points",
    response_model=FamilyPoints,
    summary="Family points total",
    responses={
        200: {
            "description": "Pooled family balance",
            "content": {
                "application/json": {
                    "example": {
                        "family_id": "ffffffff-ffff-ffff-ffff-ffffffffffff",
                        "points": 150,
                        "members": [
                            {"member_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa", "points": 100},
                            {"member_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb", "points": 50},
                        ],
                    }
                }
            },
        },
        404: {"description": "Family not found"},
    },
)
def get_family_points(family_id: UUID, db: Session = Depends(get_db)) -> FamilyPoints:
    try:
        roster_service.ensure_family(db, family_id)
        balances = balance_service.get_family_balances(db, family_id)
    except PointsRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    return FamilyPoints(
        family_id=family_id,
        points=sum(balances.values()),
        members=[MemberPoints(member_id=member_id, points=points) for member_id, points in balances.items()],
    )
