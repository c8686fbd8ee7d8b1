"""Team strength scoring.

Turns a league-table row into a single non-negative number.  Four signals
are combined with the weights held in
:class:`~backend.core.pricing_config.PricingConfig`:

* points                       × points_weight
* goal difference              × goal_difference_weight
* win rate (percent)           × win_rate_weight
* form score (percent of max)  × form_weight

Every function here is pure: no I/O, no logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional

from backend.core.pricing_config import PricingConfig

#: Points awarded per form code.  Anything else (``L``, ``?``) scores 0.
FORM_POINTS: Final[dict] = {"W": 3, "D": 1}

#: Maximum points a single form entry can contribute.
_MAX_POINTS_PER_GAME: Final[int] = 3


@dataclass(frozen=True)
class TeamSeasonStats:
    """Snapshot of one team's season, as read from the standings table."""

    team_id: int
    played_games: int = 0
    points: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goal_difference: int = 0
    form: Optional[str] = None

    @classmethod
    def from_standing(cls, row) -> "TeamSeasonStats":
        """Build stats from a ``Standing`` ORM row (or any object with the same attributes)."""
        return cls(
            team_id=row.team_id,
            played_games=row.played_games or 0,
            points=row.points or 0,
            wins=row.won or 0,
            draws=row.draw or 0,
            losses=row.lost or 0,
            goal_difference=row.goal_difference or 0,
            form=row.form,
        )


def form_codes(form: Optional[str]) -> list:
    """Split a form string into single-character codes.

    football-data.org sends ``"W,D,L,W,W"``; plain ``"WDLWW"`` is accepted
    too.  Order is preserved exactly as supplied.
    """
    if not form:
        return []
    return [c.upper() for c in form if c not in ", "]


def form_points(form: Optional[str]) -> int:
    return sum(FORM_POINTS.get(code, 0) for code in form_codes(form))


def score_strength(
    stats: TeamSeasonStats,
    config: PricingConfig = PricingConfig.default(),
) -> float:
    """Weighted strength for one team.

    Edge cases:
        played_games == 0  → win rate treated as 0 (divisor 1).
        empty form         → form contribution treated as 0 (divisor 1).

    The weighted sum is floored at 0.0 so a bottom side with heavy negative
    goal difference still yields a non-negative strength.

    Example::

        >>> score_strength(TeamSeasonStats(team_id=1, played_games=10,
        ...     points=20, wins=6, goal_difference=5, form="WL"))
        28.0
    """
    games = stats.played_games if stats.played_games > 0 else 1
    win_rate = stats.wins * 100 / games

    codes = form_codes(stats.form)
    form_max = len(codes) * _MAX_POINTS_PER_GAME or 1
    form_score = form_points(stats.form) * 100 / form_max

    raw = (
        stats.points * config.points_weight
        + stats.goal_difference * config.goal_difference_weight
        + win_rate * config.win_rate_weight
        + form_score * config.form_weight
    )
    return max(0.0, raw)
