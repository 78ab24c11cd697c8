from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models import Team, TeamMember, User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Sessions on a file-backed database, each with its own connection.

    expire_on_commit=False lets one session keep a stale view of a row
    while another session commits a competing write.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rotation.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_team(session, has_car, vehicle_capacity=1, name="Lunch Crew", tag="team"):
    """
    Build a team whose members are created in the given order.

    create_team(db, [True, False, True]) -> (team, [user0, user1, user2]),
    where the flags are each member's has_car.
    """
    team = Team(name=name, max_members=max(len(has_car), 1), vehicle_capacity=vehicle_capacity)
    session.add(team)
    session.flush()

    joined = datetime(2024, 1, 1, tzinfo=timezone.utc)
    users = []
    for i, car in enumerate(has_car):
        user = User(
            email=f"{tag}-member{i}@example.com",
            full_name=f"Member {i}",
        )
        session.add(user)
        session.flush()
        session.add(TeamMember(
            team_id=team.id,
            user_id=user.id,
            has_car=car,
            joined_at=joined + timedelta(minutes=i),
        ))
        users.append(user)

    session.commit()
    return team, users


@pytest.fixture
def make_team(db):
    counter = {"n": 0}

    def _make_team(has_car, vehicle_capacity=1, name="Lunch Crew"):
        counter["n"] += 1
        return create_team(db, has_car, vehicle_capacity, name, tag=f"team{counter['n']}")

    return _make_team


def auth(user):
    return {"X-User-Id": str(user.id)}
