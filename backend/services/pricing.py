"""
Match pricing from cached league standings.

Both teams' latest ``Standing`` rows are scored with
:func:`~backend.core.strength.score_strength` and the two strengths are
turned into decimal odds with :func:`~backend.core.odds_math.compute_odds`.
The same path prices a match for display and for bet placement, so the
odds a user sees are the odds a bet is recorded at (given unchanged
standings).
"""

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from backend.core.odds_math import OddsTriple, compute_odds
from backend.core.pricing_config import PricingConfig
from backend.core.strength import TeamSeasonStats, score_strength
from backend.models import Match, Standing

logger = logging.getLogger(__name__)


def latest_standing(db: Session, team_id: int) -> Optional[Standing]:
    return (
        db.query(Standing)
        .filter(Standing.team_id == team_id)
        .order_by(Standing.season.desc())
        .first()
    )


def team_strength(
    db: Session,
    team_id: int,
    config: PricingConfig,
) -> Optional[float]:
    """Strength of ``team_id`` from its latest standings row, or None if unknown."""
    row = latest_standing(db, team_id)
    if row is None:
        return None
    return score_strength(TeamSeasonStats.from_standing(row), config)


def _strengths(db: Session, match: Match, config: PricingConfig) -> Optional[Tuple[float, float]]:
    home = team_strength(db, match.home_team_id, config)
    away = team_strength(db, match.away_team_id, config)
    if home is None or away is None:
        logger.warning(
            "No standings for match %d (home=%s away=%s)",
            match.match_id, home is not None, away is not None,
        )
        return None
    return home, away


def match_odds(
    db: Session,
    match: Match,
    config: PricingConfig = PricingConfig.default(),
) -> Optional[OddsTriple]:
    """
    Odds for ``match``, or None when it cannot be priced.

    A match is unpriceable when either team is missing from the standings
    or scores a strength of 0.
    """
    strengths = _strengths(db, match, config)
    if strengths is None:
        return None

    odds = compute_odds(strengths[0], strengths[1], config.draw_share)
    if odds is None:
        logger.warning(
            "Insufficient data to price match %d (strengths %.2f / %.2f)",
            match.match_id, strengths[0], strengths[1],
        )
    return odds


def price_match(
    db: Session,
    match: Match,
    config: PricingConfig = PricingConfig.default(),
) -> Optional[Dict]:
    """Response payload for GET /api/matches/{id}/odds, or None if unpriceable."""
    strengths = _strengths(db, match, config)
    if strengths is None:
        return None

    home, away = strengths
    odds = compute_odds(home, away, config.draw_share)
    if odds is None:
        return None

    return {
        "match_id": match.match_id,
        "home_team": match.home_team_name,
        "away_team": match.away_team_name,
        "home_strength": round(home, 2),
        "away_strength": round(away, 2),
        "draw_share": config.draw_share,
        "odds": odds.to_dict(),
    }
