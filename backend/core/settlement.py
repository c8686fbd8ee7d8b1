"""Bet settlement decisions (pure functions, no DB).

State machine::

    OPEN ──► WON | LOST | VOID

Settled states are terminal.  WON/LOST are decided from the final score;
VOID is an administrative decision (postponed or abandoned match, manual
cancellation) and is never inferred from a score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Mapping

SELECTION_HOME: Final[str] = "HOME"
SELECTION_DRAW: Final[str] = "DRAW"
SELECTION_AWAY: Final[str] = "AWAY"
SELECTIONS: Final[tuple] = (SELECTION_HOME, SELECTION_DRAW, SELECTION_AWAY)

RESULT_WON: Final[str] = "WON"
RESULT_LOST: Final[str] = "LOST"
RESULT_VOID: Final[str] = "VOID"


class BetAlreadySettledError(Exception):
    """Raised when a settled bet is offered for settlement again."""


@dataclass(frozen=True)
class SettlementDecision:
    result: str      # WON | LOST | VOID
    payout: float    # total returned to the user (stake included on a win)


def actual_outcome(home_score: int, away_score: int) -> str:
    """``HOME`` if the home side won, ``AWAY`` if the away side won, else ``DRAW``."""
    if home_score > away_score:
        return SELECTION_HOME
    if away_score > home_score:
        return SELECTION_AWAY
    return SELECTION_DRAW


def decide_settlement(
    final_score: Mapping[str, int],
    selection: str,
    stake: float,
    odds: float,
) -> SettlementDecision:
    """
    Settle one bet against a final score.

    ``final_score`` is ``{"home": int, "away": int}``.  A winning selection
    pays ``stake × odds``; anything else pays 0.  The selection is assumed
    valid; callers reject unknown values before getting here.

    Example::

        decide_settlement({"home": 2, "away": 1}, "HOME", 100, 2.5)
        → SettlementDecision(result="WON", payout=250.0)
    """
    outcome = actual_outcome(final_score["home"], final_score["away"])
    if selection == outcome:
        return SettlementDecision(result=RESULT_WON, payout=round(stake * odds, 2))
    return SettlementDecision(result=RESULT_LOST, payout=0.0)


def void_settlement(stake: float) -> SettlementDecision:
    """Administrative cancellation: the stake is returned in full."""
    return SettlementDecision(result=RESULT_VOID, payout=round(stake, 2))


def ensure_open(is_settled: bool, bet_id=None) -> None:
    if is_settled:
        raise BetAlreadySettledError(f"Bet {bet_id} is already settled")
