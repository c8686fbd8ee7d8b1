"""Match odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or routes.

Model
-----
Each side's raw win share is its strength divided by the combined strength
of both teams.  A fixed ``draw_share`` of probability mass is reserved for
the draw, and the two win shares are scaled by ``1 - draw_share`` so that
the three probabilities sum to exactly 1 (no overround).  Each probability
``p`` is published as decimal odds ``1/p`` rounded to 2 places.

Design decisions
----------------
* A match where either strength is not strictly positive cannot be priced
  (one side would get probability 0 and infinite odds).  :func:`compute_odds`
  returns ``None`` for this case instead of leaking ``inf``/``nan``; the API
  layer turns it into an "insufficient data" response.
* ``draw_share`` outside ``(0, 1)`` is a caller error and raises
  :class:`ValueError`.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Final, Optional

from backend.core.pricing_config import DEFAULT_DRAW_SHARE

#: Decimal places used for published odds.
ODDS_PRECISION: Final[int] = 2


@dataclass(frozen=True)
class OddsTriple:
    """Decimal odds for the three mutually exclusive outcomes."""

    home_win: float
    draw: float
    away_win: float

    def for_selection(self, selection: str) -> float:
        """Odds for ``HOME`` / ``DRAW`` / ``AWAY``."""
        if selection == "HOME":
            return self.home_win
        if selection == "AWAY":
            return self.away_win
        if selection == "DRAW":
            return self.draw
        raise ValueError(f"Unknown selection {selection!r}")

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def probability_to_decimal(prob: float) -> float:
    """Convert a probability in ``(0, 1]`` to decimal odds, rounded.

    Raises:
        ValueError: If ``prob`` is not strictly positive.
    """
    if prob <= 0:
        raise ValueError(f"Probability must be positive, got {prob!r}")
    return round(1.0 / prob, ODDS_PRECISION)


def implied_probability_sum(odds: OddsTriple) -> float:
    """Sum of ``1/odds`` over the three outcomes.

    Exactly 1.0 before rounding; after rounding to 2 decimals it drifts by
    a few thousandths at most.
    """
    return 1.0 / odds.home_win + 1.0 / odds.draw + 1.0 / odds.away_win


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


def compute_odds(
    home_strength: float,
    away_strength: float,
    draw_share: float = DEFAULT_DRAW_SHARE,
) -> Optional[OddsTriple]:
    """Price a match from two team strengths.

    Example::

        compute_odds(60, 40, 0.25)
        → OddsTriple(home_win=2.22, draw=4.0, away_win=3.33)

    Args:
        home_strength: Strength of the home side.
        away_strength: Strength of the away side.
        draw_share: Probability reserved for the draw, in ``(0, 1)``.

    Returns:
        :class:`OddsTriple`, or ``None`` when either strength is not
        strictly positive (insufficient data to price the match).

    Raises:
        ValueError: If ``draw_share`` is outside ``(0, 1)``.
    """
    if not 0.0 < draw_share < 1.0:
        raise ValueError(
            f"draw_share={draw_share!r} must be strictly between 0 and 1"
        )
    if home_strength <= 0 or away_strength <= 0:
        return None

    total = home_strength + away_strength
    win_mass = 1.0 - draw_share

    p_home = home_strength / total * win_mass
    p_away = away_strength / total * win_mass

    return OddsTriple(
        home_win=probability_to_decimal(p_home),
        draw=probability_to_decimal(draw_share),
        away_win=probability_to_decimal(p_away),
    )
