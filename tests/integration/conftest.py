"""Fixtures for API tests backed by the in-memory database."""

import pytest
from fastapi.testclient import TestClient

from famfit.core.database import get_db
from famfit.main import app
from famfit.models import Family, FamilyMember, PointsLedger, PointsSource, Reward, RewardCategory


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(session_factory):
    """Family Ana(100), Ben(50), Cai(0) plus a family and an individual reward."""

    session = session_factory()
    family = Family(name="Rivera")
    session.add(family)
    session.flush()

    members = {}
    for name, points in (("Ana", 100), ("Ben", 50), ("Cai", 0)):
        member = FamilyMember(family_id=family.family_id, display_name=name)
        session.add(member)
        session.flush()
        if points:
            session.add(PointsLedger(member_id=member.member_id, delta=points, source=PointsSource.STEP_BONUS))
        members[name] = member.member_id

    family_reward = Reward(title="Pizza Night", cost=90, category=RewardCategory.FAMILY)
    solo_reward = Reward(title="Extra Screen Time", cost=40, category=RewardCategory.INDIVIDUAL)
    session.add_all([family_reward, solo_reward])
    session.commit()

    data = {
        "family_id": family.family_id,
        "members": members,
        "family_reward_id": family_reward.reward_id,
        "solo_reward_id": solo_reward.reward_id,
    }
    session.close()
    return data
