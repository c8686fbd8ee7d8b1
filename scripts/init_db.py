#!/usr/bin/env python3
"""
Set up the bet simulator database.

    python scripts/init_db.py               # create missing tables
    python scripts/init_db.py --seed        # plus an Arsenal v Chelsea fixture
    python scripts/init_db.py --sync        # plus a live pull from football-data.org
    python scripts/init_db.py --check       # connectivity only
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timedelta

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import inspect, text

from backend.models import Base, Match, SessionLocal, Standing, engine
from backend.services.sync import SyncError, sync_matches, sync_standings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_SEASON = str(datetime.utcnow().year)


def init_database(drop_existing: bool = False) -> bool:
    """Create every table, optionally dropping the existing schema first."""
    if drop_existing:
        answer = input("Drop all tables, bets and balances included? Type 'yes': ")
        if answer.lower() != "yes":
            logger.info("Aborted, nothing dropped")
            return False
        Base.metadata.drop_all(bind=engine)
        logger.warning("⚠️  All tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Tables ready: %s", ", ".join(sorted(inspect(engine).get_table_names())))
    return True


def _seed_rows():
    yield Standing(
        team_id=57, season=SEED_SEASON, team_name="Arsenal", position=1,
        played_games=10, won=7, draw=2, lost=1, points=23,
        goals_for=20, goals_against=6, goal_difference=14, form="W,W,D,W,L",
    )
    yield Standing(
        team_id=61, season=SEED_SEASON, team_name="Chelsea", position=4,
        played_games=10, won=5, draw=3, lost=2, points=18,
        goals_for=17, goals_against=11, goal_difference=6, form="D,W,L,W,D",
    )
    yield Match(
        match_id=1, utc_date=datetime.utcnow() + timedelta(days=3),
        status="TIMED", matchday=11, season=SEED_SEASON,
        home_team_id=57, home_team_name="Arsenal",
        away_team_id=61, away_team_name="Chelsea",
    )


def seed_test_data() -> None:
    """Insert a priceable fixture unless one is already there."""
    db = SessionLocal()
    try:
        if db.get(Match, 1) is not None:
            logger.info("Seed fixture already present, skipping")
            return
        db.add_all(list(_seed_rows()))
        db.commit()
        logger.info("🌱 Seeded Arsenal v Chelsea (match 1) with standings")
    except Exception as exc:
        db.rollback()
        logger.error("❌ Seeding failed: %s", exc)
    finally:
        db.close()


def pull_upstream() -> bool:
    """Fill the standings and fixtures mirror from football-data.org."""
    db = SessionLocal()
    try:
        for sync in (sync_standings, sync_matches):
            summary = sync(db, force=True)
            logger.info("%s: %d rows", summary["source"], summary["records_upserted"])
        return True
    except (SyncError, ValueError) as exc:
        logger.error("❌ Upstream pull failed: %s", exc)
        return False
    finally:
        db.close()


def check_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("❌ Cannot reach %s: %s", engine.url.render_as_string(hide_password=True), exc)
        return False
    logger.info("✅ Database reachable")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Set up the bet simulator database")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    parser.add_argument("--seed", action="store_true", help="insert a priceable test fixture")
    parser.add_argument("--sync", action="store_true", help="pull standings and fixtures")
    parser.add_argument("--check", action="store_true", help="only test connectivity")
    args = parser.parse_args()

    if not check_connection():
        return 1
    if args.check:
        return 0
    if not init_database(drop_existing=args.drop):
        return 1
    if args.seed:
        seed_test_data()
    if args.sync and not pull_upstream():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
