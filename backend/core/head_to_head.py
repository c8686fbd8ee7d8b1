"""Head-to-head aggregation over historical fixtures.

Input records use the football-data.org v4 match shape::

    {
        "homeTeam": {"id": 57, ...},
        "awayTeam": {"id": 61, ...},
        "score": {"winner": "HOME_TEAM", "fullTime": {"home": 2, "away": 1}},
    }

Wins are attributed by team **identity**, not by the home/away slot the team
happened to occupy in that historical fixture.  A team that is "home" for
the upcoming match gets credit for a win it earned on the road.

Malformed records never raise.  Missing scores contribute 0 goals, and a
record whose winner cannot be tied to either team is counted in
``skipped_records`` instead of the win/draw totals.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Optional

WINNER_HOME = "HOME_TEAM"
WINNER_AWAY = "AWAY_TEAM"
WINNER_DRAW = "DRAW"


@dataclass
class HeadToHeadAggregate:
    number_of_matches: int = 0
    total_goals: int = 0
    home_team_wins: int = 0
    away_team_wins: int = 0
    draws: int = 0
    skipped_records: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _team_id(match: dict, side: str) -> Optional[int]:
    team = match.get(side)
    if not isinstance(team, dict):
        return None
    return team.get("id")


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _goals(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _winner_team_id(match: dict, winner: Optional[str]) -> Optional[int]:
    if winner == WINNER_HOME:
        return _team_id(match, "homeTeam")
    if winner == WINNER_AWAY:
        return _team_id(match, "awayTeam")
    return None


def aggregate_head_to_head(
    matches: Iterable[dict],
    original_home_team_id: int,
    original_away_team_id: int,
) -> HeadToHeadAggregate:
    """Summarise historical meetings relative to the upcoming fixture.

    Args:
        matches: Finished fixtures between the two teams, any order.
        original_home_team_id: Team treated as "home" in the summary.
        original_away_team_id: Team treated as "away" in the summary.

    Returns:
        :class:`HeadToHeadAggregate`.  ``number_of_matches`` is the number
        of input records, classified or not.
    """
    agg = HeadToHeadAggregate()

    for match in matches:
        agg.number_of_matches += 1
        if not isinstance(match, dict):
            agg.skipped_records += 1
            continue

        score = _mapping(match.get("score"))
        full_time = _mapping(score.get("fullTime"))
        agg.total_goals += _goals(full_time.get("home")) + _goals(full_time.get("away"))

        winner = score.get("winner")
        if winner == WINNER_DRAW:
            agg.draws += 1
            continue

        winner_id = _winner_team_id(match, winner)
        if winner_id is not None and winner_id == original_home_team_id:
            agg.home_team_wins += 1
        elif winner_id is not None and winner_id == original_away_team_id:
            agg.away_team_wins += 1
        else:
            agg.skipped_records += 1

    return agg
