"""
Price statistics used by the decision loop.

Pure functions over price series and trade records. No state, no I/O.
"""

from __future__ import annotations

from typing import Iterable, Sequence

NEUTRAL_RSI = 50.0


def calculate_rsi(prices: Sequence[float], periods: int = 14) -> float:
    """Relative Strength Index with Wilder smoothing.

    The first ``periods`` differences are averaged plainly; every later
    difference is folded in as ``(avg * (periods - 1) + value) / periods``.
    Fewer than ``periods + 1`` samples yield a neutral 50. A zero average loss
    (rising or flat series) yields 100.
    """
    if periods <= 0:
        raise ValueError("periods must be positive")
    if len(prices) < periods + 1:
        return NEUTRAL_RSI

    gains = 0.0
    losses = 0.0
    for i in range(1, periods + 1):
        diff = float(prices[i]) - float(prices[i - 1])
        if diff >= 0:
            gains += diff
        else:
            losses -= diff

    avg_gain = gains / periods
    avg_loss = losses / periods

    for i in range(periods + 1, len(prices)):
        diff = float(prices[i]) - float(prices[i - 1])
        gain = diff if diff > 0 else 0.0
        loss = -diff if diff < 0 else 0.0
        avg_gain = (avg_gain * (periods - 1) + gain) / periods
        avg_loss = (avg_loss * (periods - 1) + loss) / periods

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def calculate_win_rate(trades: Iterable) -> int:
    """Percentage of trades whose output exceeded their input, rounded."""
    trades = list(trades)
    if not trades:
        return 0
    profitable = [t for t in trades if float(t.amount_b) > float(t.amount_a)]
    return round(len(profitable) / len(trades) * 100)


def calculate_avg_profit(trades: Iterable) -> float:
    """Mean of ``(amount_b - amount_a) / amount_a`` in percent, 2 decimals."""
    trades = [t for t in trades if float(t.amount_a) > 0]
    if not trades:
        return 0.0
    total = sum((float(t.amount_b) - float(t.amount_a)) / float(t.amount_a) * 100 for t in trades)
    return round(total / len(trades), 2)
