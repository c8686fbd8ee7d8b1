"""
Database models for the EPL Bet Simulator
SQLAlchemy ORM with PostgreSQL
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Boolean,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://postgres@127.0.0.1:5432/epl_bets")

# pool_pre_ping=True keeps pooled connections alive across idle periods
engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Match(Base):
    """Premier League fixture mirrored from football-data.org"""

    __tablename__ = "matches"

    match_id = Column(Integer, primary_key=True, autoincrement=False)  # football-data id
    utc_date = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, index=True)  # SCHEDULED, TIMED, FINISHED, ...
    matchday = Column(Integer)
    season = Column(String)

    home_team_id = Column(Integer, nullable=False)
    home_team_name = Column(String, nullable=False)
    home_team_crest = Column(String)
    away_team_id = Column(Integer, nullable=False)
    away_team_name = Column(String, nullable=False)
    away_team_crest = Column(String)

    # Full-time result (filled once finished)
    home_score = Column(Integer)
    away_score = Column(Integer)
    winner = Column(String)  # HOME_TEAM | AWAY_TEAM | DRAW

    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bets = relationship("Bet", back_populates="match")


class Standing(Base):
    """One row of the league table"""

    __tablename__ = "standings"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, nullable=False, index=True)
    season = Column(String, nullable=False)
    team_name = Column(String, nullable=False)
    team_crest = Column(String)

    position = Column(Integer)
    played_games = Column(Integer, default=0)
    won = Column(Integer, default=0)
    draw = Column(Integer, default=0)
    lost = Column(Integer, default=0)
    points = Column(Integer, default=0)
    goals_for = Column(Integer, default=0)
    goals_against = Column(Integer, default=0)
    goal_difference = Column(Integer, default=0)
    form = Column(String)  # "W,D,L,W,W"

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (UniqueConstraint('team_id', 'season', name='_standing_team_season_uc'),)


class User(Base):
    """Bettor holding a virtual-currency balance"""

    __tablename__ = "users"

    id = Column(String, primary_key=True)  # identifier resolved from the API key
    balance = Column(Float, nullable=False, default=1000.0)
    created_at = Column(DateTime, default=datetime.utcnow)

    bets = relationship("Bet", back_populates="user")


class Bet(Base):
    """A simulated bet on one match outcome"""

    __tablename__ = "bets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    match_id = Column(Integer, ForeignKey("matches.match_id"), nullable=False, index=True)

    user_selection = Column(String, nullable=False)  # HOME | DRAW | AWAY
    user_team = Column(String)  # team name; NULL for DRAW
    amount = Column(Float, nullable=False)  # stake
    odds = Column(Float, nullable=False)  # decimal odds at placement

    # Settlement (filled once, by the sweep or an admin void)
    is_settled = Column(Boolean, default=False, nullable=False, index=True)
    result = Column(String)  # WON | LOST | VOID, NULL while open
    won_amount = Column(Float)
    settled_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="bets")
    match = relationship("Match", back_populates="bets")


class DataFetch(Base):
    """Track upstream fetches; the latest success doubles as the sync cache timestamp"""

    __tablename__ = "data_fetches"

    id = Column(Integer, primary_key=True, index=True)
    fetch_time = Column(DateTime, default=datetime.utcnow, index=True)
    data_source = Column(String, nullable=False, index=True)  # "fd_matches", "fd_standings", ...
    success = Column(Boolean, nullable=False)
    records_fetched = Column(Integer)
    error_message = Column(Text)
    response_time_ms = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)


# Create all tables
def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables created")


if __name__ == "__main__":
    init_db()
