"""
Tests for utils/indicators.py
"""

import random

import pytest

from dex_autotrader.models.trade import Trade
from dex_autotrader.utils.indicators import (
    NEUTRAL_RSI, calculate_avg_profit, calculate_rsi, calculate_win_rate,
)


class TestRsi:

    def test_short_series_is_neutral(self):
        assert calculate_rsi([]) == NEUTRAL_RSI
        assert calculate_rsi([100.0] * 14) == NEUTRAL_RSI
        assert calculate_rsi([1, 2, 3], periods=3) == NEUTRAL_RSI

    def test_rising_series_is_100(self):
        assert calculate_rsi([float(p) for p in range(1, 30)]) == 100.0

    def test_flat_series_is_100(self):
        """No losses at all means a zero average loss."""
        assert calculate_rsi([42.0] * 15) == 100.0

    def test_falling_series_is_0(self):
        assert calculate_rsi([float(p) for p in range(30, 0, -1)]) == pytest.approx(0.0)

    def test_first_window_uses_simple_average(self):
        # 2 gains of 1, 1 loss of 1 over periods=3 -> RS = (2/3)/(1/3) = 2 -> RSI = 66.67
        assert calculate_rsi([10, 11, 12, 11], periods=3) == pytest.approx(100 - 100 / 3)

    def test_wilder_smoothing_after_first_window(self):
        # first window: gains 2/3, losses 1/3; next diff +1 -> gain (2/3*2+1)/3 = 7/9, loss (1/3*2)/3 = 2/9
        assert calculate_rsi([10, 11, 12, 11, 12], periods=3) == pytest.approx(100 - 100 / (1 + 3.5))

    def test_always_within_bounds(self):
        rng = random.Random(7)
        for _ in range(50):
            prices = [rng.uniform(1, 100) for _ in range(rng.randint(15, 60))]
            assert 0.0 <= calculate_rsi(prices) <= 100.0

    def test_invalid_periods(self):
        with pytest.raises(ValueError):
            calculate_rsi([1, 2, 3], periods=0)


def _trade(a: str, b: str) -> Trade:
    return Trade(token_a_id=1, token_b_id=2, amount_a=a, amount_b=b)


class TestPerformance:

    def test_win_rate(self):
        trades = [_trade("10", "12"), _trade("10", "8"), _trade("10", "11"), _trade("10", "10")]
        assert calculate_win_rate(trades) == 50

    def test_win_rate_empty(self):
        assert calculate_win_rate([]) == 0

    def test_avg_profit(self):
        trades = [_trade("10", "12"), _trade("10", "9")]
        assert calculate_avg_profit(trades) == pytest.approx(5.0)

    def test_avg_profit_skips_zero_inputs(self):
        assert calculate_avg_profit([_trade("0", "5")]) == 0.0
