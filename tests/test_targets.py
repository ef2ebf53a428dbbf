"""Tests for target price estimation."""

from __future__ import annotations

import pytest
from conftest import make_fundamentals, make_price

from screener.domain import AnalyticalTarget, ScoreSet
from screener.scoring import calculate_target_prices
from screener.scoring.targets import (
    bounded_stop,
    calculate_fundamental_target,
    calculate_risk_target,
    calculate_technical_target,
    sector_pe,
)


def risk_scores(risk: int) -> ScoreSet:
    return ScoreSet(attention=50, momentum=50, fundamentals=50, risk=risk)


# =============================================================================
# Sub-estimators
# =============================================================================


class TestTechnicalTarget:
    """Tests for calculate_technical_target."""

    def test_lower_half_targets_resistance_with_momentum_boost(self):
        price = make_price(price=10, high_52w=20, low_52w=5, change_5d_percent=12)
        target = calculate_technical_target(price)

        assert target.resistance == 16.25
        assert target.support == 8.75
        assert target.target == 17.06
        assert target.confidence == 0.65

    def test_bottom_of_range_targets_midpoint(self):
        price = make_price(price=6, high_52w=20, low_52w=5)
        target = calculate_technical_target(price)

        assert target.target == 12.5
        assert target.confidence == 0.7

    def test_near_highs(self):
        price = make_price(price=19, high_52w=20, low_52w=5)
        target = calculate_technical_target(price)

        assert target.target == 20.9
        assert target.confidence == 0.4

    def test_negative_five_day_move_trims_target(self):
        price = make_price(price=13, high_52w=20, low_52w=5, change_5d_percent=-15)
        target = calculate_technical_target(price)

        # 20 * 0.95 * 0.95
        assert target.target == 18.05
        assert target.confidence == 0.5

    def test_flat_range_is_treated_as_top(self):
        price = make_price(price=10, high_52w=10, low_52w=10)
        target = calculate_technical_target(price)

        assert target.target == 11.0
        assert target.confidence == 0.4

    def test_missing_range_is_synthesized(self):
        price = make_price(price=10, high_52w=None, low_52w=None)
        target = calculate_technical_target(price)

        assert target.high_52w == 13.0
        assert target.low_52w == 7.0


class TestFundamentalTarget:
    """Tests for calculate_fundamental_target."""

    def test_pe_fair_value_with_growth_premium(self):
        price = make_price(price=10)
        fundamentals = make_fundamentals(pe_ratio=10, revenue_growth=30, sector="Technology")
        target = calculate_fundamental_target(price, fundamentals)

        assert target.fair_value == 30.0
        assert target.target == 24.0
        assert target.confidence == 0.6
        assert target.sector_avg_pe == 25

    def test_shrinking_revenue_discount(self):
        price = make_price(price=10)
        fundamentals = make_fundamentals(pe_ratio=10, revenue_growth=-5, sector="Energy")
        target = calculate_fundamental_target(price, fundamentals)

        assert target.fair_value == 8.5
        assert target.target == pytest.approx(8.95)

    def test_price_to_sales_fallback(self):
        price = make_price(price=10)
        fundamentals = make_fundamentals(pe_ratio=-4, ps_ratio=5)
        target = calculate_fundamental_target(price, fundamentals)

        assert target.fair_value == 5.0
        assert target.target == 7.0
        assert target.confidence == 0.4

    def test_no_valuation_data(self):
        target = calculate_fundamental_target(make_price(price=10), make_fundamentals())

        assert target.target == 11.5
        assert target.confidence == 0.3

    def test_unknown_sector_uses_default_pe(self):
        assert sector_pe("Crypto Mining") == 15.0
        assert sector_pe(None) == 15.0


class TestRiskTarget:
    """Tests for calculate_risk_target."""

    @pytest.mark.parametrize(
        "risk,target,stop",
        [(20, 12.5, 9.2), (40, 12.0, 9.0), (60, 11.5, 8.8), (90, 11.0, 8.5)],
    )
    def test_tiers(self, risk, target, stop):
        result = calculate_risk_target(make_price(price=10), risk_scores(risk))

        assert result.target == target
        assert result.stop_loss == stop
        assert result.target_10pct == 11.0
        assert result.confidence == 0.7


# =============================================================================
# Blend
# =============================================================================


class TestTargetPrices:
    """Tests for calculate_target_prices."""

    def test_average_lies_within_targets(self):
        price = make_price(price=4.2, high_52w=9.5, low_52w=1.1, change_5d_percent=14)
        fundamentals = make_fundamentals(pe_ratio=22, revenue_growth=35)
        targets = calculate_target_prices(price, fundamentals, risk_scores(45))

        values = [targets.technical, targets.fundamental, targets.ai, targets.risk]
        assert min(values) <= targets.average <= max(values)

    def test_default_ai_target_is_mean_of_others(self):
        price = make_price(price=10, high_52w=20, low_52w=5, change_5d_percent=12)
        targets = calculate_target_prices(price, make_fundamentals(), risk_scores(20))

        # technical 17.06, fundamental 11.5, risk 12.5
        assert targets.ai == pytest.approx(13.69)
        assert targets.details.ai.confidence == 0.5
        # (17.06*.65 + 11.5*.3 + 13.69*.5 + 12.5*.7) / 2.15
        assert targets.average == pytest.approx(14.02)

    def test_reviewer_target_is_used(self):
        price = make_price(price=10)
        ai_target = AnalyticalTarget(target=15.5, reasoning="Contract win", confidence=0.8)
        targets = calculate_target_prices(price, make_fundamentals(), risk_scores(20), ai_target)

        assert targets.ai == 15.5
        assert targets.details.ai.reasoning == "Contract win"
        assert targets.details.ai.confidence == 0.8

    @pytest.mark.parametrize("risk", [10, 40, 60, 95])
    @pytest.mark.parametrize("entry", [0.37, 1.0, 3.3, 3.33, 6.6, 10.1, 10.7])
    def test_stop_never_above_ninety_percent(self, risk, entry):
        targets = calculate_target_prices(
            make_price(price=entry), make_fundamentals(), risk_scores(risk)
        )
        assert targets.stop_loss <= entry * 0.9

    @pytest.mark.parametrize("entry,expected", [(3.3, 2.96), (10.7, 9.62), (10.0, 9.0), (0.01, 0.0)])
    def test_stop_drops_a_cent_below_float_ceiling(self, entry, expected):
        # 3.3 * 0.9 is 2.9699999999999998 in floating point
        assert bounded_stop(entry, entry) == expected

    def test_low_risk_stop_is_tightened_to_ten_percent(self):
        targets = calculate_target_prices(make_price(price=10), make_fundamentals(), risk_scores(20))

        assert targets.details.risk.stop_loss == 9.2
        assert targets.stop_loss == 9.0
