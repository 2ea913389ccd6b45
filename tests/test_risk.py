"""Tests for the risk module.

Covers ATR-scaled SL/TP, the 15-pip floor, confidence-driven R:R ratios,
and the placeholder levels attached to vetoed signals.
"""

import pytest

from fxsignal.risk.sl_tp import (
    blocked_placeholder_levels,
    calculate_risk_levels,
    risk_reward_ratio,
)


# ── Risk/reward ──────────────────────────────────────────────────────────


class TestRiskReward:
    @pytest.mark.parametrize(
        "confidence, ratio",
        [(98, 3.0), (91, 3.0), (90, 2.5), (81, 2.5), (80, 2.0), (71, 2.0), (70, 1.8), (45, 1.8)],
    )
    def test_ratio_by_confidence(self, confidence, ratio):
        assert risk_reward_ratio(confidence) == ratio


# ── SL/TP ────────────────────────────────────────────────────────────────


class TestRiskLevels:
    def test_call_uses_volatility_multiplier(self):
        """HIGH volatility: SL = 2.0 × ATR below entry."""
        levels = calculate_risk_levels("EUR/USD", 1.0850, "CALL", 0.0020, "HIGH", 85)
        # sl_dist = 0.0040, tp_dist = 0.0040 × 2.5 = 0.0100
        assert levels.sl == pytest.approx(1.0810, abs=1e-9)
        assert levels.tp == pytest.approx(1.0950, abs=1e-9)
        assert levels.rr_ratio == 2.5

    def test_put_mirrors_call(self):
        levels = calculate_risk_levels("EUR/USD", 1.0850, "PUT", 0.0020, "LOW", 75)
        # sl_dist = 1.2 × 0.0020 = 0.0024, tp_dist = 0.0048
        assert levels.sl == pytest.approx(1.0874, abs=1e-9)
        assert levels.tp == pytest.approx(1.0802, abs=1e-9)

    def test_minimum_distance_is_fifteen_pips(self):
        levels = calculate_risk_levels("EUR/USD", 1.0850, "CALL", 0.0001, "MEDIUM", 60)
        assert levels.entry - levels.sl == pytest.approx(0.0015)
        assert levels.tp - levels.entry == pytest.approx(0.0015 * 1.8)

    def test_jpy_pip_floor(self):
        levels = calculate_risk_levels("USD/JPY", 149.50, "PUT", 0.01, "MEDIUM", 60)
        assert levels.sl - levels.entry == pytest.approx(0.15)

    def test_unknown_volatility_uses_low_multiplier(self):
        levels = calculate_risk_levels("EUR/USD", 1.0, "CALL", 0.0100, "EXTREME", 60)
        assert 1.0 - levels.sl == pytest.approx(0.0120)

    def test_rejects_bad_direction(self):
        with pytest.raises(ValueError, match="direction"):
            calculate_risk_levels("EUR/USD", 1.0, "buy", 0.001, "LOW", 60)


class TestPlaceholderLevels:
    def test_fifteen_below_thirty_above(self):
        levels = blocked_placeholder_levels("GBP/USD", 1.2650)
        assert levels.entry == 1.2650
        assert levels.sl == pytest.approx(1.2635)
        assert levels.tp == pytest.approx(1.2680)
        assert levels.rr_ratio == 2.0

    def test_jpy_placeholder(self):
        levels = blocked_placeholder_levels("GBP/JPY", 189.10)
        assert levels.sl == pytest.approx(188.95)
        assert levels.tp == pytest.approx(189.40)
