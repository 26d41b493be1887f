"""Cascading split of a shared family cost across member balances.

Each round charges every remaining payer an equal share of what is still
owed, rounded up, visiting the poorest payers first. A payer who cannot
cover the share gives what they have and drops out; the shortfall rolls
into the next round, where it is spread over the payers that are left.
When rounding up would collect more than is owed, the poorer payers of
that round give one point less, so a richer payer never pays less than a
poorer one who still holds points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Hashable, Mapping, Sequence, TypeVar

from .exceptions import DistributionError, ValidationError

MemberT = TypeVar("MemberT", bound=Hashable)


@dataclass(frozen=True)
class DeductionLine(Generic[MemberT]):
    member_id: MemberT
    amount: int


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def plan_family_deductions(balances: Mapping[MemberT, int], cost: int) -> list[DeductionLine[MemberT]]:
    """Return the deduction lines that pay ``cost`` out of ``balances``.

    A member may appear on several lines, one per round they paid in. The
    line amounts always add up to ``cost`` and never take a member below
    zero. Raises ``DistributionError`` when the balances cannot cover it.
    """

    if cost <= 0:
        raise ValidationError("Reward cost must be a positive number of points.")

    working = {member_id: balance for member_id, balance in balances.items() if balance > 0}
    # Richest first; ties ordered by id so the plan is reproducible.
    active = sorted(working, key=lambda member_id: (-working[member_id], str(member_id)))

    remaining = cost
    plan: list[DeductionLine[MemberT]] = []

    while remaining > 0 and active:
        share = _ceil_div(remaining, len(active))
        owed_before_round = remaining

        payers = list(reversed(active))
        amounts = [min(working[member_id], share) for member_id in payers]
        excess = sum(amounts) - remaining
        # The rounded-up share over-collects by fewer points than there are
        # payers; hand the surplus back one point each, poorest first.
        for index in range(max(excess, 0)):
            amounts[index] -= 1

        for member_id, amount in zip(payers, amounts):
            if amount <= 0:
                continue
            working[member_id] -= amount
            remaining -= amount
            plan.append(DeductionLine(member_id=member_id, amount=amount))

        active = [member_id for member_id in active if working[member_id] > 0]

        if remaining == owed_before_round:
            break

    if remaining > 0:
        raise DistributionError(
            "Unable to distribute the reward cost across family members; please try again.",
            remaining=remaining,
        )
    return plan


def totals_by_member(plan: Sequence[DeductionLine[MemberT]]) -> dict[MemberT, int]:
    """Collapse plan lines into one total per member, in order of first contribution."""

    totals: dict[MemberT, int] = {}
    for line in plan:
        totals[line.member_id] = totals.get(line.member_id, 0) + line.amount
    return totals
