"""
football-data.org v4 integration for Premier League fixtures and standings.
https://www.football-data.org/documentation/api

Endpoints used:

  GET /competitions/{code}/matches      all fixtures of the current season
  GET /competitions/{code}/standings    league table (TOTAL type is used)
  GET /matches/{id}/head2head           previous meetings of a fixture's teams

The free tier allows 10 requests/minute; callers go through the sync gate in
``backend.services.sync`` rather than hitting this client per page view.
Unlike the bet tracker's score fetch, request errors propagate so the sync
routes can report a 502 and record the failed fetch.
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

API_KEY = os.getenv("FOOTBALL_DATA_API_KEY")
BASE_URL = os.getenv("FOOTBALL_DATA_BASE_URL", "https://api.football-data.org/v4")
COMPETITION_CODE = os.getenv("COMPETITION_CODE", "PL")
REQUEST_TIMEOUT = 15


class FootballDataClient:
    """Client for football-data.org"""

    def __init__(self, api_key: Optional[str] = None, base_url: str = BASE_URL):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("FOOTBALL_DATA_API_KEY not set in environment")
        self.base_url = base_url.rstrip("/")

    def _get(self, path: str, params: Optional[Dict] = None) -> Dict:
        url = f"{self.base_url}{path}"
        resp = requests.get(
            url,
            params=params,
            headers={"X-Auth-Token": self.api_key},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()

        remaining = resp.headers.get("X-Requests-Available-Minute")
        if remaining is not None:
            logger.debug("football-data %s: %s requests left this minute", path, remaining)
        return resp.json()

    def get_matches(
        self,
        competition: str = COMPETITION_CODE,
        season: Optional[int] = None,
    ) -> List[Dict]:
        """Return every fixture of the competition's season."""
        params = {"season": season} if season else None
        data = self._get(f"/competitions/{competition}/matches", params)
        matches = data.get("matches") or []
        logger.info("football-data: %d matches fetched for %s", len(matches), competition)
        return matches

    def get_standings(self, competition: str = COMPETITION_CODE) -> Dict:
        """
        Return ``{"season": "2025", "table": [...]}`` for the TOTAL standings.

        The API returns TOTAL, HOME and AWAY tables; only TOTAL is priced.
        """
        data = self._get(f"/competitions/{competition}/standings")

        season_start = (data.get("season") or {}).get("startDate") or ""
        season = season_start[:4] or str(datetime.utcnow().year)

        table: List[Dict] = []
        for block in data.get("standings") or []:
            if block.get("type", "TOTAL") == "TOTAL":
                table = block.get("table") or []
                break

        logger.info("football-data: %d standings rows fetched (season %s)", len(table), season)
        return {"season": season, "table": table}

    def get_head_to_head(self, match_id: int, limit: int = 10) -> List[Dict]:
        """Previous meetings between the two teams of ``match_id``."""
        data = self._get(f"/matches/{match_id}/head2head", {"limit": limit})
        matches = data.get("matches") or []
        logger.info("football-data: %d head-to-head matches for match %d", len(matches), match_id)
        return matches


# ---------------------------------------------------------------------------
# Payload parsing (pure functions, no HTTP)
# ---------------------------------------------------------------------------

def parse_utc_date(value: Optional[str]) -> Optional[datetime]:
    """'2025-08-16T14:00:00Z' → naive UTC datetime."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ")
    except (TypeError, ValueError):
        logger.warning("Unparseable utcDate %r", value)
        return None


def _as_dict(value) -> Dict:
    return value if isinstance(value, dict) else {}


def parse_match(raw: Dict) -> Optional[Dict]:
    """
    Flatten a football-data match into ``Match`` column values.

    Returns None when the record lacks an id, a kickoff time, or team ids.
    """
    if not isinstance(raw, dict):
        return None
    home = _as_dict(raw.get("homeTeam"))
    away = _as_dict(raw.get("awayTeam"))
    score = _as_dict(raw.get("score"))
    full_time = _as_dict(score.get("fullTime"))
    kickoff = parse_utc_date(raw.get("utcDate"))

    if raw.get("id") is None or kickoff is None:
        return None
    if home.get("id") is None or away.get("id") is None:
        return None

    season = _as_dict(raw.get("season")).get("startDate") or ""

    return {
        "match_id": raw["id"],
        "utc_date": kickoff,
        "status": raw.get("status") or "SCHEDULED",
        "matchday": raw.get("matchday"),
        "season": season[:4] or None,
        "home_team_id": home["id"],
        "home_team_name": home.get("shortName") or home.get("name") or "",
        "home_team_crest": home.get("crest"),
        "away_team_id": away["id"],
        "away_team_name": away.get("shortName") or away.get("name") or "",
        "away_team_crest": away.get("crest"),
        "home_score": full_time.get("home"),
        "away_score": full_time.get("away"),
        "winner": score.get("winner"),
    }


def parse_standing(row: Dict, season: str) -> Optional[Dict]:
    """Flatten one standings table row into ``Standing`` column values."""
    if not isinstance(row, dict):
        return None
    team = _as_dict(row.get("team"))
    if team.get("id") is None:
        return None

    return {
        "team_id": team["id"],
        "season": season,
        "team_name": team.get("shortName") or team.get("name") or "",
        "team_crest": team.get("crest"),
        "position": row.get("position"),
        "played_games": row.get("playedGames") or 0,
        "won": row.get("won") or 0,
        "draw": row.get("draw") or 0,
        "lost": row.get("lost") or 0,
        "points": row.get("points") or 0,
        "goals_for": row.get("goalsFor") or 0,
        "goals_against": row.get("goalsAgainst") or 0,
        "goal_difference": row.get("goalDifference") or 0,
        "form": row.get("form"),
    }
