"""Shared test fixtures."""

import os

os.environ.setdefault("FAMFIT_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from famfit.core.database import Base
from famfit.models import Family, FamilyMember, PointsSource, Reward, RewardCategory, RewardRarity
from famfit.services import ledger_service


@pytest.fixture
def engine():
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself so nested transactions behave.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_family(db_session):
    def _make(name: str = "Rivera") -> Family:
        family = Family(name=name)
        db_session.add(family)
        db_session.flush()
        return family

    return _make


@pytest.fixture
def make_member(db_session):
    """Create a member, seeding their balance with a step bonus when ``points`` > 0."""

    def _make(family: Family, name: str, points: int = 0, status: str = "ACTIVE") -> FamilyMember:
        member = FamilyMember(family_id=family.family_id, display_name=name, status=status)
        db_session.add(member)
        db_session.flush()
        if points:
            ledger_service.append(
                db_session,
                member_id=member.member_id,
                delta=points,
                source=PointsSource.STEP_BONUS,
                notify=False,
            )
        return member

    return _make


@pytest.fixture
def make_reward(db_session):
    def _make(
        cost: int,
        title: str = "Pizza Night",
        category: RewardCategory = RewardCategory.FAMILY,
        rarity: RewardRarity = RewardRarity.RARE,
    ) -> Reward:
        reward = Reward(
            title=title,
            description=f"{title} for everyone",
            cost=cost,
            category=category,
            rarity=rarity,
        )
        db_session.add(reward)
        db_session.flush()
        return reward

    return _make
