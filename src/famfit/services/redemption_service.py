"""Domain logic for redeeming rewards with family points."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from ..models import FamilyMember, PointsSource, RedeemedReward, Reward
from . import ledger_service, redemption_record_service, roster_service
from .change_feed import LEDGER_TABLE, REDEMPTION_TABLE, ChangeEvent, stage_change
from .deduction_plan import DeductionLine, plan_family_deductions, totals_by_member
from .exceptions import (
    CompensationFailure,
    DistributionError,
    InsufficientPoints,
    NotFoundError,
    PointsRuleViolation,
    ValidationError,
    store_call,
)

logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    """Outcome of a completed redemption."""

    success: bool
    message: str
    deductions: list[DeductionLine] = field(default_factory=list)
    redeemed_reward_id: Optional[UUID] = None
    record: Optional[RedeemedReward] = None


def ensure_reward(session: Session, reward_id: UUID) -> Reward:
    stmt = select(Reward).where(Reward.reward_id == reward_id)
    with store_call("load reward"):
        reward = session.execute(stmt).scalar_one_or_none()
    if reward is None:
        raise NotFoundError(f"Reward {reward_id} not found")
    return reward


def _validate_cost(reward: Reward) -> None:
    if reward.cost is None or reward.cost <= 0:
        raise ValidationError("Reward cost must be a positive number of points.")


def _names(members: Iterable[FamilyMember]) -> str:
    return ", ".join(member.display_name for member in members)


def _compensate(savepoint: SessionTransaction, reward: Reward) -> None:
    try:
        savepoint.rollback()
    except SQLAlchemyError as exc:
        logger.critical("could not undo partial redemption of reward %s", reward.reward_id, exc_info=True)
        raise CompensationFailure(
            f"Redeeming '{reward.title}' failed part-way and could not be undone; "
            "points need manual reconciliation."
        ) from exc


def _apply_plan(
    session: Session,
    *,
    family_id: UUID,
    reward: Reward,
    plan: Sequence[DeductionLine],
    contributors: Sequence[UUID],
) -> RedeemedReward:
    """Write the redemption record and every deduction line as one unit."""

    with store_call("start redemption"):
        savepoint = session.begin_nested()

    try:
        record = redemption_record_service.insert(
            session,
            family_id=family_id,
            reward=reward,
            member_ids=contributors,
        )
        meta = {
            "reward_id": str(reward.reward_id),
            "reward_title": reward.title,
            "redeemed_reward_id": str(record.redeemed_reward_id),
        }
        for line in plan:
            ledger_service.append(
                session,
                member_id=line.member_id,
                delta=-line.amount,
                source=PointsSource.REWARD_REDEMPTION,
                meta=meta,
                related_redemption=record.redeemed_reward_id,
                notify=False,
            )
        with store_call("save redemption"):
            savepoint.commit()
    except PointsRuleViolation:
        _compensate(savepoint, reward)
        raise

    stage_change(session, ChangeEvent(family_id=family_id, table=LEDGER_TABLE))
    stage_change(session, ChangeEvent(family_id=family_id, table=REDEMPTION_TABLE))
    return record


def redeem_individual_reward(
    session: Session,
    *,
    family_id: UUID,
    reward: Reward,
    member_ids: Sequence[UUID],
) -> RedemptionResult:
    """Charge every selected member the full reward cost, or nobody."""

    _validate_cost(reward)
    selected = list(dict.fromkeys(member_ids))
    if not selected:
        raise ValidationError("Select at least one member to redeem this reward.")

    roster_service.lock_family(session, family_id)
    members = {member.member_id: member for member in roster_service.list_active_members(session, family_id)}
    outsiders = [member_id for member_id in selected if member_id not in members]
    if outsiders:
        raise ValidationError(
            "Selected members are not active in this family: " + ", ".join(str(m) for m in outsiders)
        )

    balances = ledger_service.sum_by_members(session, selected)
    short = [member_id for member_id in selected if balances[member_id] < reward.cost]
    if short:
        details = ", ".join(f"{members[m].display_name} ({balances[m]} pts)" for m in short)
        logger.warning("individual redemption of %s refused; short members: %s", reward.reward_id, short)
        raise InsufficientPoints(
            f"Not enough points to redeem '{reward.title}' ({reward.cost} pts each): {details}.",
            required=reward.cost,
            available=min(balances[m] for m in short),
            short_members=short,
        )

    plan = [DeductionLine(member_id=member_id, amount=reward.cost) for member_id in selected]
    record = _apply_plan(session, family_id=family_id, reward=reward, plan=plan, contributors=selected)

    logger.info(
        "individual redemption %s: reward=%s members=%d cost=%d",
        record.redeemed_reward_id,
        reward.reward_id,
        len(selected),
        reward.cost,
    )
    return RedemptionResult(
        success=True,
        message=(
            f"Redeemed '{reward.title}' for {_names(members[m] for m in selected)}; "
            f"{reward.cost} points deducted from each."
        ),
        deductions=plan,
        redeemed_reward_id=record.redeemed_reward_id,
        record=record,
    )


def redeem_family_reward(
    session: Session,
    *,
    family_id: UUID,
    reward: Reward,
) -> RedemptionResult:
    """Pay one shared reward out of the pooled balances of the whole family."""

    _validate_cost(reward)

    roster_service.lock_family(session, family_id)
    members = {member.member_id: member for member in roster_service.list_active_members(session, family_id)}
    balances = ledger_service.sum_by_members(session, members)

    available = sum(balances.values())
    if available < reward.cost:
        logger.warning(
            "family redemption of %s refused: required=%d available=%d", reward.reward_id, reward.cost, available
        )
        raise InsufficientPoints(
            f"Not enough family points to redeem '{reward.title}': {reward.cost} required, {available} available.",
            required=reward.cost,
            available=available,
        )

    try:
        plan = plan_family_deductions(balances, reward.cost)
    except DistributionError as exc:
        logger.warning(
            "family redemption of %s could not be distributed, %d points unallocated",
            reward.reward_id,
            exc.remaining,
        )
        raise

    contributors = list(totals_by_member(plan))
    record = _apply_plan(session, family_id=family_id, reward=reward, plan=plan, contributors=contributors)

    logger.info(
        "family redemption %s: reward=%s cost=%d lines=%d",
        record.redeemed_reward_id,
        reward.reward_id,
        reward.cost,
        len(plan),
    )
    return RedemptionResult(
        success=True,
        message=(
            f"Redeemed '{reward.title}' for the family; {reward.cost} points shared by "
            f"{_names(members[m] for m in contributors)}."
        ),
        deductions=plan,
        redeemed_reward_id=record.redeemed_reward_id,
        record=record,
    )


def list_redemption_history(session: Session, family_id: UUID, *, limit: int = 50, offset: int = 0) -> Sequence[RedeemedReward]:
    roster_service.ensure_family(session, family_id)
    return redemption_record_service.list_by_family(session, family_id, limit=limit, offset=offset)
