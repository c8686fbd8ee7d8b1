"""Tests for settlement: outcome decision, payouts, and terminal states."""

import pytest

from backend.core.settlement import (
    BetAlreadySettledError,
    SettlementDecision,
    actual_outcome,
    decide_settlement,
    ensure_open,
    void_settlement,
)


@pytest.mark.parametrize("home, away, expected", [
    (2, 1, "HOME"),
    (0, 3, "AWAY"),
    (1, 1, "DRAW"),
    (0, 0, "DRAW"),
])
def test_actual_outcome(home, away, expected):
    assert actual_outcome(home, away) == expected


def test_home_win_pays_stake_times_odds():
    decision = decide_settlement({"home": 2, "away": 1}, "HOME", 100, 2.5)
    assert decision == SettlementDecision(result="WON", payout=250.0)


def test_draw_loses_home_bet():
    decision = decide_settlement({"home": 1, "away": 1}, "HOME", 100, 2.5)
    assert decision.result == "LOST"
    assert decision.payout == 0


def test_draw_bet_wins_on_draw():
    decision = decide_settlement({"home": 0, "away": 0}, "DRAW", 20, 4.0)
    assert decision.result == "WON"
    assert decision.payout == pytest.approx(80.0)


def test_away_bet_wins_on_away_win():
    decision = decide_settlement({"home": 0, "away": 1}, "AWAY", 10, 3.33)
    assert decision.result == "WON"
    assert decision.payout == pytest.approx(33.3)


def test_payout_rounded_to_cents():
    decision = decide_settlement({"home": 3, "away": 0}, "HOME", 33.33, 2.22)
    assert decision.payout == round(33.33 * 2.22, 2)


@pytest.mark.parametrize("selection", ["DRAW", "AWAY"])
def test_other_selections_lose_on_home_win(selection):
    assert decide_settlement({"home": 1, "away": 0}, selection, 50, 3.0).result == "LOST"


def test_void_refunds_stake():
    assert void_settlement(42.5) == SettlementDecision(result="VOID", payout=42.5)


def test_ensure_open_passes_for_open_bet():
    ensure_open(False, 1)


def test_ensure_open_rejects_settled_bet():
    with pytest.raises(BetAlreadySettledError):
        ensure_open(True, 7)
