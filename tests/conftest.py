"""Shared fixtures: in-memory SQLite and a FastAPI test client."""

import os

# Must be set before anything imports backend.models / backend.auth
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("API_KEY_USER1", "test-admin-key")
os.environ.setdefault("API_KEY_USER2", "test-user-key")
os.environ.setdefault("STARTING_BALANCE", "1000")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models import Base, Match, Standing

ADMIN_HEADERS = {"X-API-Key": "test-admin-key"}
USER_HEADERS = {"X-API-Key": "test-user-key"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from backend.main import app
    from backend.models import get_db

    def _override():
        yield db

    app.dependency_overrides[get_db] = _override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def add_standing(db, team_id, name, points, won, played=10, gd=0, form="W,D,L", season="2025"):
    row = Standing(
        team_id=team_id, season=season, team_name=name,
        played_games=played, won=won, draw=0, lost=played - won,
        points=points, goal_difference=gd, form=form,
    )
    db.add(row)
    db.commit()
    return row


def add_match(db, match_id=100, status="TIMED", kickoff=None, home=(57, "Arsenal"),
              away=(61, "Chelsea"), home_score=None, away_score=None):
    match = Match(
        match_id=match_id,
        utc_date=kickoff or datetime.utcnow() + timedelta(days=2),
        status=status,
        home_team_id=home[0], home_team_name=home[1],
        away_team_id=away[0], away_team_name=away[1],
        home_score=home_score, away_score=away_score,
    )
    db.add(match)
    db.commit()
    return match


@pytest.fixture
def priced_match(db):
    """Upcoming Arsenal v Chelsea with both teams in the table."""
    add_standing(db, 57, "Arsenal", points=23, won=7, gd=14, form="W,W,D,W,L")
    add_standing(db, 61, "Chelsea", points=18, won=5, gd=6, form="D,W,L,W,D")
    return add_match(db)
