"""Storage and read-side status rules for redeemed rewards."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models import RedeemedReward, RedeemedRewardStatus, Reward
from ..utils.datetime import add_days, as_naive_utc
from .change_feed import REDEMPTION_TABLE, ChangeEvent, stage_change
from .exceptions import NotFoundError, RedemptionStateError, store_call


def insert(
    session: Session,
    *,
    family_id: UUID,
    reward: Reward,
    member_ids: Sequence[UUID],
    redeemed_at: Optional[datetime] = None,
) -> RedeemedReward:
    """Create a redemption record with the reward snapshotted as it is now."""

    redeemed_at = as_naive_utc(redeemed_at)
    record = RedeemedReward(
        family_id=family_id,
        reward_id=reward.reward_id,
        reward_title=reward.title,
        reward_description=reward.description,
        reward_cost=reward.cost,
        reward_category=reward.category,
        reward_rarity=reward.rarity,
        redeemed_by_members=[str(member_id) for member_id in member_ids],
        redeemed_at=redeemed_at,
        expires_at=add_days(redeemed_at, get_settings().redemption_ttl_days),
        status=RedeemedRewardStatus.ACTIVE,
    )
    with store_call("save redemption record"):
        session.add(record)
        session.flush()
    return record


def get(session: Session, redeemed_reward_id: UUID) -> RedeemedReward:
    stmt = select(RedeemedReward).where(RedeemedReward.redeemed_reward_id == redeemed_reward_id)
    with store_call("load redemption record"):
        record = session.execute(stmt).scalar_one_or_none()
    if record is None:
        raise NotFoundError(f"Redeemed reward {redeemed_reward_id} not found")
    return record


def list_by_family(
    session: Session,
    family_id: UUID,
    *,
    newest_first: bool = True,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[RedeemedReward]:
    """Return the family's redemption history."""

    order = RedeemedReward.redeemed_at.desc() if newest_first else RedeemedReward.redeemed_at.asc()
    stmt = (
        select(RedeemedReward)
        .where(RedeemedReward.family_id == family_id)
        .order_by(order)
        .offset(offset)
        .limit(limit)
    )
    with store_call("list redemption history"):
        return session.execute(stmt).scalars().all()


def derive_status(record: RedeemedReward, now: Optional[datetime] = None) -> RedeemedRewardStatus:
    """Report an active record past its expiry as expired without touching the row."""

    status = RedeemedRewardStatus(record.status)
    if status is RedeemedRewardStatus.ACTIVE and as_naive_utc(now) > record.expires_at:
        return RedeemedRewardStatus.EXPIRED
    return status


def is_expiring_soon(record: RedeemedReward, now: Optional[datetime] = None) -> bool:
    now = as_naive_utc(now)
    if derive_status(record, now) is not RedeemedRewardStatus.ACTIVE:
        return False
    return record.expires_at <= add_days(now, get_settings().expiring_soon_days)


def mark_used(session: Session, redeemed_reward_id: UUID, *, now: Optional[datetime] = None) -> RedeemedReward:
    """Move an active record to used."""

    now = as_naive_utc(now)
    record = get(session, redeemed_reward_id)
    status = derive_status(record, now)
    if status is not RedeemedRewardStatus.ACTIVE:
        raise RedemptionStateError(f"Reward '{record.reward_title}' is {status.value} and cannot be used.")

    record.status = RedeemedRewardStatus.USED
    record.used_at = now
    with store_call("update redemption record"):
        session.flush()

    stage_change(session, ChangeEvent(family_id=record.family_id, table=REDEMPTION_TABLE, action="UPDATE"))
    return record
