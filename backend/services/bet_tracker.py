"""
Bet lifecycle management.

  place_bet()                 - POST /api/place-bet: price, debit balance, insert
  settle_finished_matches()   - scheduler + /admin/force-settle: settle open bets
  void_bet() / void_match()   - admin cancellation, stake refunded

A bet is mutated exactly once, when it leaves OPEN.  Balance changes and
bet rows are written in the same session commit so a failure leaves
neither half applied.
"""

import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from backend.core.pricing_config import PricingConfig
from backend.core.settlement import (
    SELECTION_DRAW,
    SELECTION_HOME,
    SELECTIONS,
    RESULT_WON,
    BetAlreadySettledError,
    SettlementDecision,
    decide_settlement,
    ensure_open,
    void_settlement,
)
from backend.models import Bet, Match, SessionLocal, User
from backend.services.pricing import match_odds

logger = logging.getLogger(__name__)

#: Match statuses that still accept bets.
OPEN_STATUSES = frozenset({"SCHEDULED", "TIMED"})
FINISHED_STATUS = "FINISHED"


class BetError(Exception):
    """Base class for bet placement and settlement failures."""


class MatchNotFoundError(BetError):
    pass


class MatchNotOpenError(BetError):
    pass


class MatchNotPriceableError(BetError):
    pass


class InvalidSelectionError(BetError):
    pass


class InsufficientBalanceError(BetError):
    pass


class BetNotFoundError(BetError):
    pass


def starting_balance() -> float:
    return float(os.getenv("STARTING_BALANCE", "1000"))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def get_or_create_user(db: Session, user_id: str, lock: bool = False) -> User:
    """Load the user row, creating it with the starting balance on first use."""
    query = db.query(User).filter(User.id == user_id)
    if lock:
        query = query.with_for_update().populate_existing()
    user = query.first()
    if user is None:
        user = User(id=user_id, balance=starting_balance())
        db.add(user)
        db.flush()
        logger.info("Created user %s with balance %.2f", user_id, user.balance)
    return user


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

def resolve_team(match: Match, selection: str, team: Optional[str]) -> Optional[str]:
    """
    Validate the (selection, team) pair and return the canonical team name.

    DRAW takes no team.  HOME/AWAY require the name of the matching side
    (case-insensitive).
    """
    if selection not in SELECTIONS:
        raise InvalidSelectionError(f"Unknown selection {selection!r}")
    if selection == SELECTION_DRAW:
        return None
    if not team:
        raise InvalidSelectionError(f"A team name is required for a {selection} bet")

    expected = match.home_team_name if selection == SELECTION_HOME else match.away_team_name
    if team.strip().lower() != (expected or "").lower():
        raise InvalidSelectionError(
            f"Team {team!r} does not match the {selection.lower()} side ({expected})"
        )
    return expected


def place_bet(
    db: Session,
    user_id: str,
    match_id: int,
    selection: str,
    amount: float,
    team: Optional[str] = None,
    config: PricingConfig = PricingConfig.default(),
) -> Bet:
    """
    Price the selection, debit the stake and record the bet.

    Raises:
        MatchNotFoundError, MatchNotOpenError, MatchNotPriceableError,
        InvalidSelectionError, InsufficientBalanceError
    """
    match = db.get(Match, match_id)
    if match is None:
        raise MatchNotFoundError(f"Match {match_id} not found")
    if match.status not in OPEN_STATUSES or match.utc_date <= datetime.utcnow():
        raise MatchNotOpenError(f"Match {match_id} is not open for betting ({match.status})")

    team_name = resolve_team(match, selection, team)

    odds = match_odds(db, match, config)
    if odds is None:
        raise MatchNotPriceableError(f"Insufficient data to price match {match_id}")

    stake = round(amount, 2)
    user = get_or_create_user(db, user_id, lock=True)
    if stake <= 0:
        raise BetError("Stake must be positive")
    if stake > user.balance:
        raise InsufficientBalanceError(
            f"Stake {stake:.2f} exceeds balance {user.balance:.2f}"
        )

    user.balance = round(user.balance - stake, 2)
    bet = Bet(
        user_id=user.id,
        match_id=match.match_id,
        user_selection=selection,
        user_team=team_name,
        amount=stake,
        odds=odds.for_selection(selection),
        is_settled=False,
    )
    db.add(bet)
    db.commit()
    db.refresh(bet)

    logger.info(
        "Bet %d placed: %s %s on match %d @ %.2f, stake %.2f (balance %.2f)",
        bet.id, user_id, selection, match_id, bet.odds, stake, user.balance,
    )
    return bet


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

def calculate_bet_outcome(bet: Bet, match: Match) -> Optional[SettlementDecision]:
    """
    Decide WON/LOST for an open bet on a finished match.

    Returns None if the match has no final score yet.
    """
    if match.home_score is None or match.away_score is None:
        return None
    return decide_settlement(
        {"home": match.home_score, "away": match.away_score},
        bet.user_selection,
        bet.amount,
        bet.odds,
    )


def apply_settlement(db: Session, bet: Bet, decision: SettlementDecision) -> Bet:
    """
    Move ``bet`` out of OPEN and credit the payout.  Caller commits.

    The transition is a conditional UPDATE on ``is_settled = false``: a
    session holding a stale copy of a bet another session already settled
    matches no row and raises ``BetAlreadySettledError`` before crediting.
    """
    ensure_open(bet.is_settled, bet.id)

    claimed = (
        db.query(Bet)
        .filter(Bet.id == bet.id, Bet.is_settled.is_(False))
        .update(
            {
                Bet.is_settled: True,
                Bet.result: decision.result,
                Bet.won_amount: decision.payout,
                Bet.settled_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    if claimed == 0:
        raise BetAlreadySettledError(f"Bet {bet.id} was settled by another run")
    db.expire(bet)

    if decision.payout > 0:
        user = get_or_create_user(db, bet.user_id, lock=True)
        user.balance = round(user.balance + decision.payout, 2)
    return bet


def settle_finished_matches(db: Optional[Session] = None) -> Dict:
    """
    Settle every open bet whose match is FINISHED with a final score.

    Called by the scheduler and /admin/force-settle.  Per-bet failures are
    collected in ``errors`` and do not stop the sweep.
    """
    logger.info("Starting settle_finished_matches")
    own_session = db is None
    if own_session:
        db = SessionLocal()

    settled = 0
    won = 0
    errors: List[str] = []

    try:
        pending = (
            db.query(Bet)
            .join(Match)
            .filter(Bet.is_settled.is_(False), Match.status == FINISHED_STATUS)
            .with_for_update(skip_locked=True, of=Bet)
            .all()
        )

        for bet in pending:
            try:
                decision = calculate_bet_outcome(bet, bet.match)
                if decision is None:
                    errors.append(f"Bet {bet.id}: match {bet.match_id} has no final score")
                    continue

                apply_settlement(db, bet, decision)
                db.commit()
                settled += 1
                if decision.result == RESULT_WON:
                    won += 1
                logger.info(
                    "%s: bet %d (%s) | payout %.2f",
                    decision.result, bet.id, bet.user_selection, decision.payout,
                )
            except BetAlreadySettledError:
                db.rollback()
                logger.info("Bet %d already settled by another run, skipping", bet.id)
            except Exception as exc:
                db.rollback()
                errors.append(f"Bet {bet.id}: {exc}")
                logger.error("Error settling bet %d: %s", bet.id, exc)

    except Exception as exc:
        logger.error("Fatal error in settle_finished_matches: %s", exc, exc_info=True)
        db.rollback()
        errors.append(f"Fatal: {exc}")
    finally:
        if own_session:
            db.close()

    summary = _job_summary(settled, won, errors)
    logger.info("settle_finished_matches done: %s", summary)
    return summary


# ---------------------------------------------------------------------------
# Administrative voids
# ---------------------------------------------------------------------------

def void_bet(db: Session, bet_id: int) -> Bet:
    """Cancel one open bet and refund its stake."""
    bet = db.get(Bet, bet_id, with_for_update=True, populate_existing=True)
    if bet is None:
        raise BetNotFoundError(f"Bet {bet_id} not found")

    apply_settlement(db, bet, void_settlement(bet.amount))
    db.commit()
    logger.info("VOID: bet %d, refunded %.2f to %s", bet.id, bet.won_amount, bet.user_id)
    return bet


def void_match(db: Session, match_id: int) -> int:
    """Cancel every open bet on a match (postponed/abandoned).  Returns the count."""
    match = db.get(Match, match_id)
    if match is None:
        raise MatchNotFoundError(f"Match {match_id} not found")

    open_bets = (
        db.query(Bet)
        .filter(Bet.match_id == match_id, Bet.is_settled.is_(False))
        .all()
    )
    for bet in open_bets:
        apply_settlement(db, bet, void_settlement(bet.amount))
    db.commit()

    logger.info("VOID: %d open bet(s) on match %d refunded", len(open_bets), match_id)
    return len(open_bets)


def _job_summary(settled: int, won: int, errors: List[str]) -> Dict:
    return {
        "bets_settled": settled,
        "bets_won": won,
        "bets_lost": settled - won,
        "errors": errors,
        "timestamp": datetime.utcnow().isoformat(),
    }
