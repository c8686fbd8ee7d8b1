"""Pricing configuration: all strength and odds constants in one place.

This module is the **registry** for every constant used to turn league
standings into match prices.  Nowhere else in the codebase should the
strength weights or the draw share be hard-coded.

Architecture
------------
:class:`PricingConfig` is a frozen dataclass carrying the constants.  The
named constructor :meth:`PricingConfig.default` returns the production
weighting.  The scorer and the odds calculator receive the config (or its
fields) explicitly, so tests can probe edge weightings without touching the
functions themselves.

Typical usage::

    from backend.core.pricing_config import PricingConfig

    cfg = PricingConfig.default()
    strength = score_strength(stats, cfg)

    # Override a single constant for an experiment:
    from dataclasses import replace
    flat_draw = replace(cfg, draw_share=0.20)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

#: Competition code used for every upstream request (football-data.org).
COMPETITION_PL: Final[str] = "PL"

#: Default probability mass reserved for a draw.
DEFAULT_DRAW_SHARE: Final[float] = 0.25


@dataclass(frozen=True)
class PricingConfig:
    """Immutable weighting bundle for the strength scorer and odds calculator.

    Attributes:
        points_weight: Multiplier on league points.
        goal_difference_weight: Multiplier on goal difference.
        win_rate_weight: Multiplier on win percentage (0-100).
        form_weight: Multiplier on form percentage (0-100).
        draw_share: Probability reserved for the draw, in ``(0, 1)``.

    The four strength weights should sum to 1.0 so that strengths stay on a
    comparable scale across teams.  This is not enforced at runtime;
    :meth:`weights_sum` is there for tests and sanity checks.
    """

    points_weight: float = 0.5
    goal_difference_weight: float = 0.2
    win_rate_weight: float = 0.2
    form_weight: float = 0.1
    draw_share: float = DEFAULT_DRAW_SHARE

    @classmethod
    def default(cls) -> "PricingConfig":
        """Production weighting (0.5 / 0.2 / 0.2 / 0.1, draw share 0.25)."""
        return cls()

    def weights_sum(self) -> float:
        return (
            self.points_weight
            + self.goal_difference_weight
            + self.win_rate_weight
            + self.form_weight
        )
