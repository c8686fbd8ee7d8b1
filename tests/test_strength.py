"""
Tests for team strength scoring.
Run with: pytest tests/test_strength.py -v
"""

from dataclasses import replace

import pytest

from backend.core.pricing_config import PricingConfig
from backend.core.strength import (
    TeamSeasonStats,
    form_codes,
    form_points,
    score_strength,
)


def _stats(**overrides):
    base = dict(
        team_id=1, played_games=10, points=20, wins=6, draws=2, losses=2,
        goal_difference=5, form="WL",
    )
    base.update(overrides)
    return TeamSeasonStats(**base)


class TestFormParsing:
    """football-data sends comma-separated form; plain strings work too"""

    @pytest.mark.parametrize("form, expected", [
        ("W,D,L", ["W", "D", "L"]),
        ("WDL", ["W", "D", "L"]),
        ("w,d", ["W", "D"]),
        ("", []),
        (None, []),
    ])
    def test_form_codes(self, form, expected):
        assert form_codes(form) == expected

    def test_form_points(self):
        assert form_points("W,W,D,L,W") == 10

    def test_unknown_code_scores_zero(self):
        assert form_points("W,?,X") == 3


class TestScoreStrength:

    def test_weighted_sum(self):
        # 20*0.5 + 5*0.2 + 60*0.2 + 50*0.1
        assert score_strength(_stats()) == pytest.approx(28.0)

    def test_zero_played_games_gives_zero_win_rate(self):
        stats = _stats(played_games=0, wins=0, points=0, goal_difference=0, form="")
        assert score_strength(stats) == 0.0

    def test_zero_played_games_does_not_divide_by_zero(self):
        stats = _stats(played_games=0, wins=0, form="")
        # points + goal difference only
        assert score_strength(stats) == pytest.approx(20 * 0.5 + 5 * 0.2)

    def test_empty_form_contributes_nothing(self):
        with_form = score_strength(_stats(form="LL"))
        without_form = score_strength(_stats(form=""))
        none_form = score_strength(_stats(form=None))
        assert with_form == pytest.approx(without_form)
        assert none_form == pytest.approx(without_form)

    def test_perfect_form_adds_full_form_weight(self):
        delta = score_strength(_stats(form="WWWWW")) - score_strength(_stats(form=""))
        assert delta == pytest.approx(100 * 0.1)

    @pytest.mark.parametrize("points", [0, 1, 10, 37, 90])
    def test_monotonic_in_points(self, points):
        assert score_strength(_stats(points=points + 1)) >= score_strength(_stats(points=points))

    def test_monotonic_in_goal_difference(self):
        scores = [score_strength(_stats(goal_difference=gd)) for gd in range(-20, 21, 5)]
        assert scores == sorted(scores)

    def test_monotonic_in_wins(self):
        scores = [score_strength(_stats(wins=w)) for w in range(0, 11)]
        assert scores == sorted(scores)

    def test_never_negative(self):
        stats = _stats(points=0, wins=0, goal_difference=-40, form="LLLLL")
        assert score_strength(stats) == 0.0

    def test_custom_weights(self):
        cfg = replace(PricingConfig.default(), points_weight=1.0, goal_difference_weight=0.0,
                      win_rate_weight=0.0, form_weight=0.0)
        assert score_strength(_stats(points=33), cfg) == pytest.approx(33.0)


class TestPricingConfig:

    def test_default_weights_sum_to_one(self):
        assert PricingConfig.default().weights_sum() == pytest.approx(1.0)

    def test_default_draw_share(self):
        assert PricingConfig.default().draw_share == 0.25

    def test_config_is_frozen(self):
        cfg = PricingConfig.default()
        with pytest.raises(Exception):
            cfg.points_weight = 2.0


class TestFromStanding:

    def test_maps_orm_columns(self):
        class Row:
            team_id = 57
            played_games = 12
            points = 26
            won = 8
            draw = 2
            lost = 2
            goal_difference = 15
            form = "W,W,L"

        stats = TeamSeasonStats.from_standing(Row())
        assert stats.team_id == 57
        assert stats.wins == 8
        assert stats.draws == 2
        assert stats.losses == 2
        assert stats.form == "W,W,L"

    def test_null_columns_default_to_zero(self):
        class Row:
            team_id = 1
            played_games = None
            points = None
            won = None
            draw = None
            lost = None
            goal_difference = None
            form = None

        stats = TeamSeasonStats.from_standing(Row())
        assert score_strength(stats) == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
