"""
Enumerations shared by the trading engine.
"""

from __future__ import annotations

from enum import Enum


class TradeAction(str, Enum):
    """What a decision asks the executor to do."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RiskLevel(str, Enum):
    """Risk tier of a strategy and of the session selection."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LogType(str, Enum):
    """Severity of an activity journal entry."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
