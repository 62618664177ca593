"""
Market analysis and trade decision values.

Both are transient: produced fresh every decision cycle and never persisted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from dex_autotrader.enums.trading import TradeAction


class MarketAnalysis(BaseModel):
    """What the market oracle thinks.

    ``available`` is False when the oracle could not run at all, which is
    different from an analysis that recommends HOLD.
    """

    recommendation: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    action: TradeAction = TradeAction.HOLD
    reasoning: List[str] = Field(default_factory=list)
    available: bool = True

    @classmethod
    def unavailable(cls, reason: str) -> "MarketAnalysis":
        return cls(
            recommendation="AI analysis currently unavailable.",
            confidence=0.0,
            action=TradeAction.HOLD,
            reasoning=[reason, "System operating in fallback mode"],
            available=False,
        )


class Decision(BaseModel):
    action: TradeAction
    token_pair: str
    amount: Decimal = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: List[str] = Field(default_factory=list)
    suggested_slippage: float = Field(default=0.5, ge=0.0)

    @property
    def base_symbol(self) -> str:
        return self.token_pair.split("/")[1]

    @property
    def quote_symbol(self) -> str:
        return self.token_pair.split("/")[0]
