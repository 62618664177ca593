# services/oracle_service.py
from __future__ import annotations
import json
import os
from abc import ABC, abstractmethod
from typing import Sequence

import requests

from dex_autotrader.enums.trading import TradeAction
from dex_autotrader.models.decision import MarketAnalysis
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or ""
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4-turbo-preview")
OPENAI_TIMEOUT_SECS = float(os.getenv("OPENAI_TIMEOUT_SECS", "30"))

RSI_OVERSOLD = float(os.getenv("RSI_OVERSOLD", "30"))
RSI_OVERBOUGHT = float(os.getenv("RSI_OVERBOUGHT", "70"))

SYSTEM_PROMPT = (
    "You are a cryptocurrency trading expert AI. "
    "Provide specific, actionable analysis in the requested JSON format."
)


class MarketOracle(ABC):
    """Opaque market analyst. Must report unavailability via ``available=False``."""

    @abstractmethod
    def analyze(self, price: float, price_history: Sequence[float], volume: float, rsi: float) -> MarketAnalysis:
        ...


def parse_analysis(payload: dict) -> MarketAnalysis:
    """Normalize a loosely typed JSON analysis (confidence may arrive as text)."""
    try:
        confidence = float(payload.get("confidence", 0) or 0)
    except (TypeError, ValueError):
        confidence = 0.0
    confidence = min(max(confidence, 0.0), 1.0)

    raw_action = str(payload.get("action", "HOLD")).strip().upper()
    action = TradeAction(raw_action) if raw_action in TradeAction.__members__ else TradeAction.HOLD

    reasoning = payload.get("reasoning") or []
    if isinstance(reasoning, str):
        reasoning = [reasoning]

    return MarketAnalysis(
        recommendation=str(payload.get("recommendation", "")),
        confidence=confidence,
        action=action,
        reasoning=[str(r) for r in reasoning],
        available=True,
    )


class OpenAIOracle(MarketOracle):
    """
    Chat-completions analyst with a JSON response format.
    Config: OPENAI_API_KEY (missing -> unavailable), OPENAI_MODEL, OPENAI_BASE_URL.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None,
                 base_url: str | None = None, session: requests.Session | None = None) -> None:
        self.api_key = api_key if api_key is not None else OPENAI_API_KEY
        self.model = model or OPENAI_MODEL
        self.base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self.http = session or requests.Session()
        if not self.api_key:
            logger.warning("OpenAIOracle without OPENAI_API_KEY; analysis will be reported unavailable.")

    @staticmethod
    def _prompt(price: float, price_history: Sequence[float], volume: float, rsi: float) -> str:
        history = ", ".join(f"{p}" for p in price_history)
        return (
            "Analyze these cryptocurrency market conditions and provide a trading recommendation:\n\n"
            f"Current Price: ${price}\n"
            f"Price History: {history}\n"
            f"Trading Volume: ${volume}\n"
            f"RSI: {rsi:.2f}\n\n"
            "Provide analysis in JSON format:\n"
            '{"recommendation": "Brief trading recommendation", '
            '"confidence": "Number between 0 and 1", '
            '"action": "BUY, SELL, or HOLD", '
            '"reasoning": ["Reason 1", "Reason 2", "Reason 3"]}'
        )

    @log_function
    def analyze(self, price: float, price_history: Sequence[float], volume: float, rsi: float) -> MarketAnalysis:
        if not self.api_key:
            return MarketAnalysis.unavailable("API key not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._prompt(price, price_history, volume, rsi)},
            ],
            "response_format": {"type": "json_object"},
        }
        try:
            r = self.http.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=OPENAI_TIMEOUT_SECS,
            )
            r.raise_for_status()
            content = r.json()["choices"][0]["message"]["content"]
            if not content:
                raise ValueError("Empty response from model")
            return parse_analysis(json.loads(content))
        except (requests.RequestException, KeyError, IndexError, ValueError) as e:
            logger.error(f"✗ market analysis failed: {e}")
            return MarketAnalysis.unavailable(f"API error occurred: {e}")


class RsiOracle(MarketOracle):
    """Rule-based analyst: oversold -> BUY, overbought -> SELL, otherwise HOLD."""

    def __init__(self, oversold: float = RSI_OVERSOLD, overbought: float = RSI_OVERBOUGHT) -> None:
        self.oversold = oversold
        self.overbought = overbought

    def analyze(self, price: float, price_history: Sequence[float], volume: float, rsi: float) -> MarketAnalysis:
        if rsi < self.oversold:
            action = TradeAction.BUY
            confidence = min(1.0, (self.oversold - rsi) / self.oversold + 0.5)
            reason = f"RSI {rsi:.1f} below {self.oversold:.0f} (oversold)"
        elif rsi > self.overbought:
            action = TradeAction.SELL
            confidence = min(1.0, (rsi - self.overbought) / (100 - self.overbought) + 0.5)
            reason = f"RSI {rsi:.1f} above {self.overbought:.0f} (overbought)"
        else:
            action = TradeAction.HOLD
            confidence = 0.5
            reason = f"RSI {rsi:.1f} in neutral band"
        return MarketAnalysis(
            recommendation=f"{action.value} at {price}",
            confidence=round(confidence, 4),
            action=action,
            reasoning=[reason, f"Volume {volume}"],
        )


def build_oracle() -> MarketOracle:
    """ORACLE=openai (default) | rsi"""
    if os.getenv("ORACLE", "openai").lower() == "rsi":
        return RsiOracle()
    return OpenAIOracle()
