"""Endpoints for reward redemptions."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...models import RedeemedReward
from ...schemas import (
    DeductionRead,
    FamilyRedemptionCreate,
    IndividualRedemptionCreate,
    RedeemedRewardRead,
    RedemptionResultRead,
)
from ...services import redemption_record_service, redemption_service
from ...services.exceptions import PointsRuleViolation, store_call
from ...services.redemption_service import RedemptionResult
from ...utils.datetime import utcnow

router = APIRouter(tags=["redemptions"])

_RESULT_EXAMPLE = {
    "success": True,
    "message": "Redeemed 'Pizza Night' for the family; 90 points shared by Ben, Ana.",
    "deductions": [
        {"member_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb", "amount": 45},
        {"member_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa", "amount": 45},
    ],
    "redeemed_reward_id": "88888888-8888-8888-8888-888888888888",
}


def _to_result(result: RedemptionResult) -> RedemptionResultRead:
    return RedemptionResultRead(
        success=result.success,
        message=result.message,
        deductions=[DeductionRead.model_validate(line) for line in result.deductions],
        redeemed_reward_id=result.redeemed_reward_id,
    )


def _to_record(record: RedeemedReward) -> RedeemedRewardRead:
    now = utcnow()
    return RedeemedRewardRead.model_validate(record).model_copy(
        update={
            "status": redemption_record_service.derive_status(record, now),
            "expiring_soon": redemption_record_service.is_expiring_soon(record, now),
        }
    )


@router.post(
    "/families/{family_id}/redemptions/family",
    response_model=RedemptionResultRead,
    status_code=status.HTTP_201_CREATED,
    summary="Redeem a reward from the family pool",
    responses={
        201: {"description": "Redemption completed", "content": {"application/json": {"example": _RESULT_EXAMPLE}}},
        400: {"description": "Not enough family points"},
        404: {"description": "Family or reward not found"},
        409: {"description": "Cost could not be distributed; retry"},
    },
)
def redeem_family_reward(
    family_id: UUID,
    payload: FamilyRedemptionCreate,
    db: Session = Depends(get_db),
) -> RedemptionResultRead:
    """Spend one shared reward cost across the members' balances.

    Example request body::

        {
            "reward_id": "77777777-7777-7777-7777-777777777777"
        }
    """

    try:
        reward = redemption_service.ensure_reward(db, payload.reward_id)
        result = redemption_service.redeem_family_reward(db, family_id=family_id, reward=reward)
        with store_call("save the family redemption"):
            db.commit()
        return _to_result(result)
    except PointsRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/families/{family_id}/redemptions/individual",
    response_model=RedemptionResultRead,
    status_code=status.HTTP_201_CREATED,
    summary="Redeem a reward for selected members",
    responses={
        201: {"description": "Redemption completed"},
        400: {"description": "A selected member cannot afford the reward"},
        404: {"description": "Family or reward not found"},
    },
)
def redeem_individual_reward(
    family_id: UUID,
    payload: IndividualRedemptionCreate,
    db: Session = Depends(get_db),
) -> RedemptionResultRead:
    """Each selected member pays the full cost for their own copy.

    Example request body::

        {
            "reward_id": "77777777-7777-7777-7777-777777777777",
            "member_ids": ["aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"]
        }
    """

    try:
        reward = redemption_service.ensure_reward(db, payload.reward_id)
        result = redemption_service.redeem_individual_reward(
            db,
            family_id=family_id,
            reward=reward,
            member_ids=payload.member_ids,
        )
        with store_call("save the redemption"):
            db.commit()
        return _to_result(result)
    except PointsRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/families/{family_id}/redemptions",
    response_model=List[RedeemedRewardRead],
    summary="Family redemption history",
)
def list_redemption_history(
    family_id: UUID,
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[RedeemedRewardRead]:
    """Return redeemed rewards, newest first, with expiry applied."""

    try:
        records = redemption_service.list_redemption_history(db, family_id, limit=limit, offset=offset)
    except PointsRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return [_to_record(record) for record in records]


@router.post(
    "/redemptions/{redeemed_reward_id}/use",
    response_model=RedeemedRewardRead,
    summary="Mark a redeemed reward as used",
    responses={
        404: {"description": "Redeemed reward not found"},
        409: {"description": "Reward already used or expired"},
    },
)
def use_redeemed_reward(redeemed_reward_id: UUID, db: Session = Depends(get_db)) -> RedeemedRewardRead:
    try:
        record = redemption_record_service.mark_used(db, redeemed_reward_id)
        with store_call("mark the reward as used"):
            db.commit()
            db.refresh(record)
        return _to_record(record)
    except PointsRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
