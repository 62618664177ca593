"""
Shared fixtures: an AppContext on a throwaway sqlite file, with a scripted
oracle, a recording swap provider and a static market in place of the
network collaborators.
"""

import os

# module-level settings are read at import time
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["IDENTITY_BACKOFF_SECS"] = "0"
os.environ.pop("TELEGRAM_TOKEN", None)
os.environ.pop("TELEGRAM_CHAT_ID", None)

from decimal import Decimal
from typing import Callable, List, Optional

import pytest

from dex_autotrader.app_context import AppContext
from dex_autotrader.enums.trading import TradeAction
from dex_autotrader.models.decision import MarketAnalysis
from dex_autotrader.models.result import SwapResult
from dex_autotrader.models.token import Token
from dex_autotrader.services.market_service import MarketSnapshot
from dex_autotrader.services.oracle_service import MarketOracle
from dex_autotrader.services.swap_provider import SwapProvider
from dex_autotrader.services.telegram_service import TelegramService
from dex_autotrader.utils.config import DEFAULT_CONFIG

TEST_MNEMONIC = "test test test test test test test test test test test junk"
USER = "0xAbC0000000000000000000000000000000000001"


class ScriptedOracle(MarketOracle):
    """Returns queued analyses in order; the last one repeats. `before_return` runs inside analyze()."""

    def __init__(self, *analyses: MarketAnalysis) -> None:
        self.analyses: List[MarketAnalysis] = list(analyses) or [MarketAnalysis(action=TradeAction.HOLD, confidence=0.5)]
        self.calls: List[dict] = []
        self.before_return: Optional[Callable[[], None]] = None

    def analyze(self, price, price_history, volume, rsi) -> MarketAnalysis:
        self.calls.append({"price": price, "history": list(price_history), "volume": volume, "rsi": rsi})
        if self.before_return:
            self.before_return()
        if len(self.analyses) > 1:
            return self.analyses.pop(0)
        return self.analyses[0]


class RecordingSwapProvider(SwapProvider):
    """Records every swap request and answers with `result` (a SwapResult or a callable building one)."""

    def __init__(self, result=None) -> None:
        self.calls: List[dict] = []
        self.result = result or SwapResult(success=True, tx_hash="0x" + "ab" * 32, output_amount="0.00009800")
        self.during_swap: Optional[Callable[[], None]] = None

    def swap(self, source: Token, dest: Token, amount_in: int, slippage: float, signer: str) -> SwapResult:
        self.calls.append({
            "source": source.symbol, "dest": dest.symbol,
            "amount_in": amount_in, "slippage": slippage, "signer": signer,
        })
        if self.during_swap:
            self.during_swap()
        return self.result(source, dest, amount_in) if callable(self.result) else self.result


class StaticMarket:
    """MarketService stand-in with a fixed snapshot."""

    def __init__(self, price: float = 50000.0, history: Optional[List[float]] = None,
                 volume: float = 1_000_000.0, liquidity: float = 2_000_000.0) -> None:
        self.price = price
        self.history = history if history is not None else [50000.0 + i * 10 for i in range(20)]
        self.volume = volume
        self.liquidity = liquidity
        self.snapshots = 0

    def snapshot(self, symbol: str) -> MarketSnapshot:
        self.snapshots += 1
        return MarketSnapshot(symbol=symbol, price=self.price, price_history=list(self.history),
                              volume=self.volume, liquidity=self.liquidity)

    def refresh_tokens(self):
        return []


def analysis(action: TradeAction, confidence: float) -> MarketAnalysis:
    return MarketAnalysis(
        recommendation=f"{action.value} now",
        confidence=confidence,
        action=action,
        reasoning=["scripted"],
    )


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def provider() -> RecordingSwapProvider:
    return RecordingSwapProvider()


@pytest.fixture
def market() -> StaticMarket:
    return StaticMarket()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "autotrader.db")


@pytest.fixture
def ctx(db_path, oracle, provider, market) -> AppContext:
    context = AppContext(
        db_path=db_path,
        config=DEFAULT_CONFIG,
        oracle=oracle,
        swap_provider=provider,
        market=market,
        telegram=TelegramService(token="", chat_id=""),
        mnemonic=TEST_MNEMONIC,
        background=False,
    )
    yield context
    context.shutdown()


@pytest.fixture
def started(ctx):
    """An active session for USER with 100 allocated; returns the DecisionEngine."""
    result = ctx.sessions.start(USER, Decimal("100"))
    assert result.ok, result.reason
    return ctx.engines.get(result.session_id)
