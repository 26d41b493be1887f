"""Unit tests for the redemption engine."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from famfit.models import PointsLedger, PointsSource, RedeemedReward, RewardCategory
from famfit.services import balance_service, ledger_service, redemption_service, roster_service
from famfit.services.change_feed import LEDGER_TABLE, REDEMPTION_TABLE, feed
from famfit.services.deduction_plan import totals_by_member
from famfit.services.exceptions import (
    CompensationFailure,
    InsufficientPoints,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)


def _redemption_entries(session):
    stmt = select(PointsLedger).where(PointsLedger.source == PointsSource.REWARD_REDEMPTION)
    return session.execute(stmt).scalars().all()


def _record_count(session) -> int:
    return session.execute(select(func.count(RedeemedReward.redeemed_reward_id))).scalar_one()


@pytest.fixture
def family(make_family):
    return make_family()


class TestFamilyRedemption:
    def test_cost_shared_between_members_with_points(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=100)
        ben = make_member(family, "Ben", points=50)
        cai = make_member(family, "Cai")
        reward = make_reward(90)

        result = redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        assert result.success is True
        assert totals_by_member(result.deductions) == {ben.member_id: 45, ana.member_id: 45}
        assert balance_service.get_member_points(db_session, ana.member_id) == 55
        assert balance_service.get_member_points(db_session, ben.member_id) == 5
        assert balance_service.get_member_points(db_session, cai.member_id) == 0
        assert "Pizza Night" in result.message

        record = result.record
        assert record.redeemed_reward_id == result.redeemed_reward_id
        assert record.redeemed_by_members == [str(ben.member_id), str(ana.member_id)]
        assert record.reward_cost == 90

    def test_one_ledger_entry_per_plan_line(self, db_session, family, make_member, make_reward) -> None:
        make_member(family, "Ana", points=100)
        make_member(family, "Ben", points=10)
        reward = make_reward(90)

        result = redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        entries = _redemption_entries(db_session)
        assert len(entries) == len(result.deductions) == 3
        assert sorted(entry.delta for entry in entries) == [-45, -35, -10]
        assert all(entry.related_redemption == result.redeemed_reward_id for entry in entries)
        assert entries[0].meta["reward_title"] == "Pizza Night"
        assert balance_service.get_family_points(db_session, family.family_id) == 20

    def test_not_enough_family_points(self, db_session, family, make_member, make_reward) -> None:
        make_member(family, "Ana", points=20)
        make_member(family, "Ben", points=10)
        reward = make_reward(50)

        with pytest.raises(InsufficientPoints) as exc_info:
            redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        assert exc_info.value.required == 50
        assert exc_info.value.available == 30
        assert "50 required, 30 available" in exc_info.value.detail
        assert _redemption_entries(db_session) == []
        assert _record_count(db_session) == 0

    def test_inactive_member_is_not_charged(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=40)
        former = make_member(family, "Former", points=500, status="LEFT")
        reward = make_reward(40)

        redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        assert balance_service.get_member_points(db_session, ana.member_id) == 0
        assert balance_service.get_member_points(db_session, former.member_id) == 500

    def test_unknown_family(self, db_session, make_reward) -> None:
        with pytest.raises(NotFoundError):
            redemption_service.redeem_family_reward(db_session, family_id=uuid.uuid4(), reward=make_reward(10))

    def test_family_is_locked_before_balances_are_read(
        self, db_session, family, make_member, make_reward, monkeypatch
    ) -> None:
        make_member(family, "Ana", points=10)
        calls = []
        real_lock = roster_service.lock_family
        real_sum = ledger_service.sum_by_members
        real_append = ledger_service.append

        def spy_lock(*args, **kwargs):
            calls.append("lock")
            return real_lock(*args, **kwargs)

        def spy_sum(*args, **kwargs):
            calls.append("read")
            return real_sum(*args, **kwargs)

        def spy_append(*args, **kwargs):
            calls.append("write")
            return real_append(*args, **kwargs)

        monkeypatch.setattr(roster_service, "lock_family", spy_lock)
        monkeypatch.setattr(ledger_service, "sum_by_members", spy_sum)
        monkeypatch.setattr(ledger_service, "append", spy_append)

        redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=make_reward(10))

        assert calls == ["lock", "read", "write"]

    def test_changes_published_on_commit(self, db_session, family, make_member, make_reward) -> None:
        make_member(family, "Ana", points=10)
        reward = make_reward(10)
        db_session.commit()
        received = []
        unsubscribe = feed.subscribe(family.family_id, received.append)
        try:
            redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)
            db_session.commit()
        finally:
            unsubscribe()

        assert {change.table for change in received} == {LEDGER_TABLE, REDEMPTION_TABLE}


class TestIndividualRedemption:
    def test_every_selected_member_pays_full_cost(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=50)
        ben = make_member(family, "Ben", points=45)
        reward = make_reward(40, title="Extra Screen Time", category=RewardCategory.INDIVIDUAL)

        result = redemption_service.redeem_individual_reward(
            db_session,
            family_id=family.family_id,
            reward=reward,
            member_ids=[ana.member_id, ben.member_id],
        )

        assert result.success is True
        assert totals_by_member(result.deductions) == {ana.member_id: 40, ben.member_id: 40}
        assert balance_service.get_member_points(db_session, ana.member_id) == 10
        assert balance_service.get_member_points(db_session, ben.member_id) == 5
        assert result.record.redeemed_by_members == [str(ana.member_id), str(ben.member_id)]
        assert _record_count(db_session) == 1

    def test_short_member_blocks_everyone(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=50)
        ben = make_member(family, "Ben", points=30)
        reward = make_reward(40, category=RewardCategory.INDIVIDUAL)

        with pytest.raises(InsufficientPoints) as exc_info:
            redemption_service.redeem_individual_reward(
                db_session,
                family_id=family.family_id,
                reward=reward,
                member_ids=[ana.member_id, ben.member_id],
            )

        assert exc_info.value.short_members == [ben.member_id]
        assert "Ben (30 pts)" in exc_info.value.detail
        assert "Ana" not in exc_info.value.detail
        assert balance_service.get_member_points(db_session, ana.member_id) == 50
        assert _redemption_entries(db_session) == []
        assert _record_count(db_session) == 0

    def test_duplicate_selection_charged_once(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=50)
        reward = make_reward(40, category=RewardCategory.INDIVIDUAL)

        redemption_service.redeem_individual_reward(
            db_session,
            family_id=family.family_id,
            reward=reward,
            member_ids=[ana.member_id, ana.member_id],
        )

        assert balance_service.get_member_points(db_session, ana.member_id) == 10

    def test_empty_selection_rejected(self, db_session, family, make_reward) -> None:
        with pytest.raises(ValidationError):
            redemption_service.redeem_individual_reward(
                db_session, family_id=family.family_id, reward=make_reward(10), member_ids=[]
            )

    def test_member_outside_family_rejected(self, db_session, family, make_family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=50)
        outsider = make_member(make_family("Other"), "Zed", points=50)

        with pytest.raises(ValidationError):
            redemption_service.redeem_individual_reward(
                db_session,
                family_id=family.family_id,
                reward=make_reward(10),
                member_ids=[ana.member_id, outsider.member_id],
            )

        assert _redemption_entries(db_session) == []

    def test_non_positive_cost_rejected(self, db_session, family, make_member, make_reward) -> None:
        ana = make_member(family, "Ana", points=50)
        reward = make_reward(10)
        reward.cost = 0

        with pytest.raises(ValidationError):
            redemption_service.redeem_individual_reward(
                db_session, family_id=family.family_id, reward=reward, member_ids=[ana.member_id]
            )


class TestWriteFailures:
    def test_failed_write_leaves_no_partial_redemption(
        self, db_session, family, make_member, make_reward, monkeypatch
    ) -> None:
        ana = make_member(family, "Ana", points=100)
        ben = make_member(family, "Ben", points=50)
        reward = make_reward(90)
        real_append = ledger_service.append
        appended = []

        def flaky_append(*args, **kwargs):
            if appended:
                raise PersistenceFailure("Could not record points; please try again.")
            appended.append(kwargs["member_id"])
            return real_append(*args, **kwargs)

        monkeypatch.setattr(ledger_service, "append", flaky_append)

        with pytest.raises(PersistenceFailure):
            redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        assert appended == [ben.member_id]
        assert _redemption_entries(db_session) == []
        assert _record_count(db_session) == 0
        assert balance_service.get_member_points(db_session, ana.member_id) == 100
        assert balance_service.get_member_points(db_session, ben.member_id) == 50

    def test_failed_undo_is_reported_for_reconciliation(
        self, db_session, family, make_member, make_reward, monkeypatch
    ) -> None:
        make_member(family, "Ana", points=100)
        reward = make_reward(30)

        class BrokenSavepoint:
            def commit(self):
                raise OperationalError("RELEASE SAVEPOINT", {}, Exception("connection lost"))

            def rollback(self):
                raise OperationalError("ROLLBACK TO SAVEPOINT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "begin_nested", lambda: BrokenSavepoint())

        with pytest.raises(CompensationFailure) as exc_info:
            redemption_service.redeem_family_reward(db_session, family_id=family.family_id, reward=reward)

        assert exc_info.value.status_code == 500
        assert "manual reconciliation" in exc_info.value.detail
