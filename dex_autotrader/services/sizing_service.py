# services/sizing_service.py
from __future__ import annotations
import os
from decimal import Decimal, ROUND_DOWN
from typing import Optional

from dex_autotrader.enums.trading import RiskLevel, TradeAction
from dex_autotrader.models.decision import Decision, MarketAnalysis
from dex_autotrader.models.strategy import Strategy
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

TRADING_PAIR     = os.getenv("TRADING_PAIR", "USDC/WBTC").upper()  # QUOTE/BASE
DEFAULT_SLIPPAGE = float(os.getenv("DEFAULT_SLIPPAGE", "0.5"))   # %
MIN_SLIPPAGE     = float(os.getenv("MIN_SLIPPAGE", "0.1"))       # %
MAX_SLIPPAGE     = float(os.getenv("MAX_SLIPPAGE", "5.0"))       # %

# share of the allocation put at stake per trade, by risk tier
POSITION_FRACTION = {
    RiskLevel.LOW: Decimal(os.getenv("POSITION_FRACTION_LOW", "0.10")),
    RiskLevel.MEDIUM: Decimal(os.getenv("POSITION_FRACTION_MEDIUM", "0.25")),
    RiskLevel.HIGH: Decimal(os.getenv("POSITION_FRACTION_HIGH", "0.50")),
}

_QUOTE_STEP = Decimal("0.01")
_BASE_STEP = Decimal("0.00000001")


class TradeSizer:
    """
    Turns an oracle analysis into a sized Decision on TRADING_PAIR ("QUOTE/BASE").
      BUY  amount in quote units = allocated * fraction(risk) * confidence
      SELL amount in base units  = the same quote value / base price
      slippage = DEFAULT_SLIPPAGE + price impact (quote value / pool liquidity), clamped
    Minimum floors are not applied here; the executor owns them.
    """

    def __init__(self, token_pair: str = TRADING_PAIR) -> None:
        self.token_pair = token_pair

    @staticmethod
    def fraction_for(strategy: Optional[Strategy]) -> Decimal:
        level = strategy.risk_level if strategy else RiskLevel.MEDIUM
        return POSITION_FRACTION[level]

    @staticmethod
    def suggested_slippage(quote_value: Decimal, liquidity: float) -> float:
        if liquidity and liquidity > 0:
            impact = float(quote_value) / float(liquidity) * 100
        else:
            impact = MAX_SLIPPAGE
        return round(min(max(DEFAULT_SLIPPAGE + impact, MIN_SLIPPAGE), MAX_SLIPPAGE), 4)

    def size(self, analysis: MarketAnalysis, allocated: Decimal, price: float,
             liquidity: float, strategy: Optional[Strategy] = None) -> Decision:
        confidence = Decimal(str(analysis.confidence))
        quote_value = (Decimal(allocated) * self.fraction_for(strategy) * confidence).quantize(_QUOTE_STEP, rounding=ROUND_DOWN)

        if analysis.action == TradeAction.BUY:
            amount = quote_value
        elif analysis.action == TradeAction.SELL and price > 0:
            amount = (quote_value / Decimal(str(price))).quantize(_BASE_STEP, rounding=ROUND_DOWN)
        else:
            amount = Decimal("0")

        decision = Decision(
            action=analysis.action,
            token_pair=self.token_pair,
            amount=amount,
            confidence=analysis.confidence,
            reasoning=list(analysis.reasoning),
            suggested_slippage=self.suggested_slippage(quote_value, liquidity),
        )
        logger.debug(f"[sizing] {decision.action.value} {decision.amount} on {decision.token_pair} "
                     f"(alloc={allocated}, conf={analysis.confidence}, slip={decision.suggested_slippage}%)")
        return decision
