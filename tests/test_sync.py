"""Tests for sync: timestamp-gated upsert of matches and standings."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from backend.models import DataFetch, Match, Standing
from backend.services.sync import (
    SOURCE_MATCHES,
    SOURCE_STANDINGS,
    SyncError,
    is_fresh,
    sync_matches,
    sync_standings,
)


def _raw_match(match_id, status="TIMED", home=None, away=None, winner=None):
    return {
        "id": match_id,
        "utcDate": "2030-01-01T15:00:00Z",
        "status": status,
        "matchday": 20,
        "homeTeam": {"id": 57, "shortName": "Arsenal"},
        "awayTeam": {"id": 61, "shortName": "Chelsea"},
        "score": {"winner": winner, "fullTime": {"home": home, "away": away}},
    }


def _client(matches=None, table=None):
    client = MagicMock()
    client.get_matches.return_value = matches or []
    client.get_standings.return_value = {"season": "2025", "table": table or []}
    return client


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

def test_sync_matches_inserts(db):
    client = _client([_raw_match(1), _raw_match(2)])
    summary = sync_matches(db, client=client)

    assert summary["skipped"] is False
    assert summary["records_upserted"] == 2
    assert db.query(Match).count() == 2
    assert db.query(DataFetch).filter(DataFetch.success.is_(True)).count() == 1


def test_sync_matches_updates_existing_rows(db):
    sync_matches(db, client=_client([_raw_match(1)]))
    sync_matches(
        db,
        client=_client([_raw_match(1, status="FINISHED", home=3, away=1, winner="HOME_TEAM")]),
        force=True,
    )

    match = db.get(Match, 1)
    assert db.query(Match).count() == 1
    assert match.status == "FINISHED"
    assert match.home_score == 3


def test_sync_matches_skips_when_fresh(db):
    sync_matches(db, client=_client([_raw_match(1)]))
    client = _client([_raw_match(2)])

    summary = sync_matches(db, client=client)

    assert summary["skipped"] is True
    client.get_matches.assert_not_called()
    assert db.query(Match).count() == 1


def test_sync_matches_refreshes_when_stale(db):
    db.add(DataFetch(
        data_source=SOURCE_MATCHES, success=True, records_fetched=1,
        fetch_time=datetime.utcnow() - timedelta(hours=2),
    ))
    db.commit()
    client = _client([_raw_match(1)])

    summary = sync_matches(db, client=client)

    assert summary["skipped"] is False
    client.get_matches.assert_called_once()


def test_sync_matches_skips_malformed_records(db):
    bad = {"id": 3, "utcDate": None}
    summary = sync_matches(db, client=_client([_raw_match(1), bad, "537785", None]))
    assert summary["records_upserted"] == 1
    assert db.query(Match).count() == 1


def test_failed_fetch_is_recorded_and_does_not_count_as_fresh(db):
    client = _client()
    client.get_matches.side_effect = requests.exceptions.ConnectionError("down")

    with pytest.raises(SyncError):
        sync_matches(db, client=client)

    failure = db.query(DataFetch).one()
    assert failure.success is False
    assert "down" in failure.error_message
    assert is_fresh(db, SOURCE_MATCHES, 15) is False


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------

ROW = {
    "position": 1, "team": {"id": 57, "shortName": "Arsenal"},
    "playedGames": 10, "won": 7, "draw": 2, "lost": 1, "points": 23,
    "goalsFor": 20, "goalsAgainst": 6, "goalDifference": 14, "form": "W,W,D,L,W",
}


def test_sync_standings_upserts_by_team_and_season(db):
    sync_standings(db, client=_client(table=[ROW]))
    sync_standings(db, client=_client(table=[dict(ROW, points=26, playedGames=11)]), force=True)

    rows = db.query(Standing).all()
    assert len(rows) == 1
    assert rows[0].points == 26
    assert rows[0].played_games == 11
    assert rows[0].season == "2025"


def test_standings_gate_is_independent_of_matches(db):
    sync_matches(db, client=_client([_raw_match(1)]))
    assert is_fresh(db, SOURCE_STANDINGS, 15) is False

    summary = sync_standings(db, client=_client(table=[ROW]))
    assert summary["skipped"] is False
