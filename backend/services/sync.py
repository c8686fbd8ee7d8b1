"""
Cached mirror of football-data.org matches and standings.

Each sync is gated on the most recent *successful* ``DataFetch`` row for its
source: if that fetch is younger than ``SYNC_MAX_AGE_MIN`` minutes the
upstream call is skipped.  Otherwise the payload is upserted row by row
(insert new ids, overwrite existing ones) and a new ``DataFetch`` is logged.

  sync_matches()    - POST /api/sync-matches and the scheduler
  sync_standings()  - POST /api/sync-standings and the scheduler
"""

import logging
import os
import time
from datetime import datetime, timedelta
from typing import Dict, Optional

import requests
from sqlalchemy.orm import Session

from backend.models import DataFetch, Match, Standing
from backend.services.football_data import (
    FootballDataClient,
    parse_match,
    parse_standing,
)

logger = logging.getLogger(__name__)

SOURCE_MATCHES = "fd_matches"
SOURCE_STANDINGS = "fd_standings"


class SyncError(Exception):
    """Upstream fetch failed; the failure has already been recorded."""


def _max_age_minutes() -> int:
    return int(os.getenv("SYNC_MAX_AGE_MIN", "15"))


def last_successful_fetch(db: Session, source: str) -> Optional[datetime]:
    row = (
        db.query(DataFetch)
        .filter(DataFetch.data_source == source, DataFetch.success.is_(True))
        .order_by(DataFetch.fetch_time.desc())
        .first()
    )
    return row.fetch_time if row else None


def is_fresh(db: Session, source: str, max_age_minutes: int) -> bool:
    last = last_successful_fetch(db, source)
    if last is None:
        return False
    return datetime.utcnow() - last < timedelta(minutes=max_age_minutes)


def _record_failure(db: Session, source: str, exc: Exception, elapsed_ms: int) -> None:
    db.add(DataFetch(
        data_source=source,
        success=False,
        error_message=str(exc)[:500],
        records_fetched=0,
        response_time_ms=elapsed_ms,
    ))
    db.commit()


def _summary(source: str, skipped: bool, upserted: int, last_fetch: Optional[datetime]) -> Dict:
    return {
        "source": source,
        "skipped": skipped,
        "records_upserted": upserted,
        "last_fetch": last_fetch.isoformat() if last_fetch else None,
    }


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

def upsert_matches(db: Session, raw_matches) -> int:
    """Insert or overwrite ``Match`` rows; returns the number written."""
    written = 0
    for raw in raw_matches:
        values = parse_match(raw)
        if values is None:
            logger.warning(
                "Skipping malformed match record: id=%s",
                raw.get("id") if isinstance(raw, dict) else raw,
            )
            continue

        match = db.get(Match, values["match_id"])
        if match is None:
            db.add(Match(**values))
        else:
            for key, value in values.items():
                setattr(match, key, value)
        written += 1
    return written


def sync_matches(
    db: Session,
    client: Optional[FootballDataClient] = None,
    force: bool = False,
) -> Dict:
    """Refresh the cached fixture list if it is stale."""
    max_age = _max_age_minutes()
    if not force and is_fresh(db, SOURCE_MATCHES, max_age):
        last = last_successful_fetch(db, SOURCE_MATCHES)
        logger.info("sync_matches skipped: last fetch %s within %d min", last, max_age)
        return _summary(SOURCE_MATCHES, True, 0, last)

    client = client or FootballDataClient()
    started = time.monotonic()
    try:
        raw = client.get_matches()
    except requests.exceptions.RequestException as exc:
        elapsed = int((time.monotonic() - started) * 1000)
        logger.error("Match sync failed: %s", exc)
        _record_failure(db, SOURCE_MATCHES, exc, elapsed)
        raise SyncError(f"football-data matches request failed: {exc}") from exc

    elapsed = int((time.monotonic() - started) * 1000)
    written = upsert_matches(db, raw)
    fetch = DataFetch(
        data_source=SOURCE_MATCHES,
        success=True,
        records_fetched=written,
        response_time_ms=elapsed,
        fetch_time=datetime.utcnow(),
    )
    db.add(fetch)
    db.commit()

    logger.info("sync_matches: %d matches upserted in %d ms", written, elapsed)
    return _summary(SOURCE_MATCHES, False, written, fetch.fetch_time)


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------

def upsert_standings(db: Session, table, season: str) -> int:
    written = 0
    for row in table:
        values = parse_standing(row, season)
        if values is None:
            logger.warning("Skipping malformed standings row: %s", row)
            continue

        standing = (
            db.query(Standing)
            .filter(Standing.team_id == values["team_id"], Standing.season == season)
            .first()
        )
        if standing is None:
            db.add(Standing(**values))
        else:
            for key, value in values.items():
                setattr(standing, key, value)
        written += 1
    return written


def sync_standings(
    db: Session,
    client: Optional[FootballDataClient] = None,
    force: bool = False,
) -> Dict:
    """Refresh the cached league table if it is stale."""
    max_age = _max_age_minutes()
    if not force and is_fresh(db, SOURCE_STANDINGS, max_age):
        last = last_successful_fetch(db, SOURCE_STANDINGS)
        logger.info("sync_standings skipped: last fetch %s within %d min", last, max_age)
        return _summary(SOURCE_STANDINGS, True, 0, last)

    client = client or FootballDataClient()
    started = time.monotonic()
    try:
        payload = client.get_standings()
    except requests.exceptions.RequestException as exc:
        elapsed = int((time.monotonic() - started) * 1000)
        logger.error("Standings sync failed: %s", exc)
        _record_failure(db, SOURCE_STANDINGS, exc, elapsed)
        raise SyncError(f"football-data standings request failed: {exc}") from exc

    elapsed = int((time.monotonic() - started) * 1000)
    written = upsert_standings(db, payload["table"], payload["season"])
    fetch = DataFetch(
        data_source=SOURCE_STANDINGS,
        success=True,
        records_fetched=written,
        response_time_ms=elapsed,
        fetch_time=datetime.utcnow(),
    )
    db.add(fetch)
    db.commit()

    logger.info(
        "sync_standings: %d rows upserted for season %s in %d ms",
        written, payload["season"], elapsed,
    )
    return _summary(SOURCE_STANDINGS, False, written, fetch.fetch_time)
