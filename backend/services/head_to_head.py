"""
Head-to-head history for an upcoming match.

Previous meetings come straight from football-data.org (they are not part
of the cached season mirror) and are folded with
:func:`~backend.core.head_to_head.aggregate_head_to_head`, oriented so the
upcoming match's home side is "home" in the summary.
"""

import logging
import os
from typing import Dict, Optional

from backend.core.head_to_head import aggregate_head_to_head
from backend.models import Match
from backend.services.football_data import FootballDataClient, parse_utc_date

logger = logging.getLogger(__name__)

H2H_LIMIT = int(os.getenv("H2H_LIMIT", "10"))


def _is_finished(raw: Dict) -> bool:
    return raw.get("status") == "FINISHED"


def _recent_meeting(raw: Dict) -> Dict:
    score = raw.get("score") or {}
    full_time = score.get("fullTime") or {}
    kickoff = parse_utc_date(raw.get("utcDate"))
    return {
        "match_id": raw.get("id"),
        "utc_date": kickoff.isoformat() if kickoff else None,
        "home_team": (raw.get("homeTeam") or {}).get("name"),
        "away_team": (raw.get("awayTeam") or {}).get("name"),
        "home_score": full_time.get("home"),
        "away_score": full_time.get("away"),
        "winner": score.get("winner"),
    }


def get_head_to_head(
    match: Match,
    client: Optional[FootballDataClient] = None,
    limit: int = H2H_LIMIT,
) -> Dict:
    """Aggregate plus the raw list of previous finished meetings."""
    client = client or FootballDataClient()
    history = [m for m in client.get_head_to_head(match.match_id, limit=limit) if _is_finished(m)]

    agg = aggregate_head_to_head(history, match.home_team_id, match.away_team_id)
    if agg.skipped_records:
        logger.warning(
            "Head-to-head for match %d: %d of %d records could not be classified",
            match.match_id, agg.skipped_records, agg.number_of_matches,
        )

    return {
        "match_id": match.match_id,
        "home_team": match.home_team_name,
        "away_team": match.away_team_name,
        "aggregates": agg.to_dict(),
        "matches": [_recent_meeting(m) for m in history],
    }
