"""Tests for football_data: payload parsing and the HTTP client."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
import requests

from backend.services.football_data import (
    FootballDataClient,
    parse_match,
    parse_standing,
    parse_utc_date,
)

RAW_MATCH = {
    "id": 537785,
    "utcDate": "2025-08-16T14:00:00Z",
    "status": "FINISHED",
    "matchday": 1,
    "season": {"startDate": "2025-08-15"},
    "homeTeam": {"id": 57, "name": "Arsenal FC", "shortName": "Arsenal", "crest": "a.png"},
    "awayTeam": {"id": 61, "name": "Chelsea FC", "shortName": "Chelsea", "crest": "c.png"},
    "score": {"winner": "HOME_TEAM", "fullTime": {"home": 2, "away": 1}},
}

RAW_ROW = {
    "position": 1,
    "team": {"id": 57, "name": "Arsenal FC", "shortName": "Arsenal", "crest": "a.png"},
    "playedGames": 10, "form": "W,W,D,L,W",
    "won": 7, "draw": 2, "lost": 1, "points": 23,
    "goalsFor": 20, "goalsAgainst": 6, "goalDifference": 14,
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def test_parse_utc_date():
    assert parse_utc_date("2025-08-16T14:00:00Z") == datetime(2025, 8, 16, 14, 0)


@pytest.mark.parametrize("value", [None, "", "16/08/2025"])
def test_parse_utc_date_invalid(value):
    assert parse_utc_date(value) is None


def test_parse_match():
    values = parse_match(RAW_MATCH)
    assert values["match_id"] == 537785
    assert values["status"] == "FINISHED"
    assert values["season"] == "2025"
    assert values["home_team_name"] == "Arsenal"
    assert values["away_team_id"] == 61
    assert values["home_score"] == 2
    assert values["away_score"] == 1
    assert values["winner"] == "HOME_TEAM"


def test_parse_scheduled_match_has_no_score():
    raw = dict(RAW_MATCH, status="TIMED", score={"winner": None, "fullTime": {"home": None, "away": None}})
    values = parse_match(raw)
    assert values["home_score"] is None
    assert values["winner"] is None


@pytest.mark.parametrize("missing", ["id", "utcDate", "homeTeam"])
def test_parse_match_rejects_incomplete(missing):
    raw = {k: v for k, v in RAW_MATCH.items() if k != missing}
    assert parse_match(raw) is None


def test_parse_standing():
    values = parse_standing(RAW_ROW, "2025")
    assert values["team_id"] == 57
    assert values["team_name"] == "Arsenal"
    assert values["played_games"] == 10
    assert values["goal_difference"] == 14
    assert values["form"] == "W,W,D,L,W"


def test_parse_standing_without_team():
    assert parse_standing({"position": 3}, "2025") is None


@pytest.mark.parametrize("row", [None, "Arsenal", {"team": "Arsenal"}])
def test_parse_standing_rejects_non_mapping(row):
    assert parse_standing(row, "2025") is None


@pytest.mark.parametrize("raw", [
    None,
    537785,
    dict(RAW_MATCH, homeTeam="Arsenal"),
    dict(RAW_MATCH, utcDate=20250816),
])
def test_parse_match_rejects_non_mapping_fields(raw):
    assert parse_match(raw) is None


def test_parse_match_tolerates_string_score():
    values = parse_match(dict(RAW_MATCH, score="2-1", season="2025"))
    assert values["home_score"] is None
    assert values["winner"] is None
    assert values["season"] is None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.headers = {}
    resp.raise_for_status.return_value = None
    return resp


def test_client_requires_api_key(monkeypatch):
    monkeypatch.setattr("backend.services.football_data.API_KEY", None)
    with pytest.raises(ValueError):
        FootballDataClient()


@patch("backend.services.football_data.requests.get")
def test_get_matches_sends_token(mock_get):
    mock_get.return_value = _response({"matches": [RAW_MATCH]})
    client = FootballDataClient(api_key="abc")

    matches = client.get_matches()

    assert matches == [RAW_MATCH]
    args, kwargs = mock_get.call_args
    assert args[0].endswith("/competitions/PL/matches")
    assert kwargs["headers"] == {"X-Auth-Token": "abc"}


@patch("backend.services.football_data.requests.get")
def test_get_standings_picks_total_table(mock_get):
    mock_get.return_value = _response({
        "season": {"startDate": "2025-08-15"},
        "standings": [
            {"type": "HOME", "table": [{"position": 99}]},
            {"type": "TOTAL", "table": [RAW_ROW]},
        ],
    })
    payload = FootballDataClient(api_key="abc").get_standings()
    assert payload["season"] == "2025"
    assert payload["table"] == [RAW_ROW]


@patch("backend.services.football_data.requests.get")
def test_get_head_to_head_passes_limit(mock_get):
    mock_get.return_value = _response({"matches": []})
    FootballDataClient(api_key="abc").get_head_to_head(537785, limit=5)
    args, kwargs = mock_get.call_args
    assert args[0].endswith("/matches/537785/head2head")
    assert kwargs["params"] == {"limit": 5}


@patch("backend.services.football_data.requests.get")
def test_http_errors_propagate(mock_get):
    resp = _response({})
    resp.raise_for_status.side_effect = requests.exceptions.HTTPError("429 Too Many Requests")
    mock_get.return_value = resp
    with pytest.raises(requests.exceptions.HTTPError):
        FootballDataClient(api_key="abc").get_matches()
