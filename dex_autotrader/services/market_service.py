# services/market_service.py
from __future__ import annotations
import os
import threading
from collections import deque
from typing import Deque, Dict, List, Optional

import requests
from pydantic import BaseModel, Field

from dex_autotrader.models.token import Token
from dex_autotrader.repositories.token_repository import TokenRepository
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

DEXSCREENER_BASE_URL = (os.getenv("DEXSCREENER_BASE_URL") or "https://api.dexscreener.com/latest/dex").rstrip("/")
DEXSCREENER_TIMEOUT_SECS = float(os.getenv("DEXSCREENER_TIMEOUT_SECS", "8"))
PRICE_HISTORY_SIZE = int(os.getenv("PRICE_HISTORY_SIZE", "24"))


class MarketSnapshot(BaseModel):
    symbol: str
    price: float = 0.0
    price_history: List[float] = Field(default_factory=list)
    volume: float = 0.0
    liquidity: float = 0.0


class MarketService:
    """
    Market data from DexScreener.
      - refresh_token(): price / 24h volume / liquidity of the deepest pair for a token
      - snapshot(): latest values plus a rolling price history (PRICE_HISTORY_SIZE samples)
    Network failures keep the last known values; the history only grows on a fresh price.
    """

    def __init__(self, token_repo: TokenRepository, base_url: Optional[str] = None,
                 history_size: int = PRICE_HISTORY_SIZE, session: requests.Session | None = None) -> None:
        self.tokens = token_repo
        self.base_url = (base_url or DEXSCREENER_BASE_URL).rstrip("/")
        self.http = session or requests.Session()
        self.history_size = history_size
        self._history: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    # ---------- DexScreener ----------
    def _best_pair(self, token: Token) -> Optional[dict]:
        url = f"{self.base_url}/tokens/{token.address}"
        r = self.http.get(url, timeout=DEXSCREENER_TIMEOUT_SECS)
        r.raise_for_status()
        pairs = (r.json() or {}).get("pairs") or []
        # only pairs where our token is the base, so priceUsd is its own price
        own = [p for p in pairs if ((p.get("baseToken") or {}).get("address") or "").lower() == token.address.lower()]
        if not own:
            return None
        return max(own, key=lambda p: float((p.get("liquidity") or {}).get("usd") or 0))

    @log_function
    def refresh_token(self, symbol: str) -> Optional[Token]:
        token = self.tokens.get_by_symbol(symbol)
        if not token:
            logger.warning(f"[market] unknown token {symbol}")
            return None
        try:
            pair = self._best_pair(token)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[market] DexScreener error for {symbol}: {e}")
            return token
        if not pair:
            logger.debug(f"[market] no pair found for {symbol}")
            return token

        fresh = token.with_market(pair)
        self.tokens.save(fresh)
        if fresh.price > 0:
            self.record_price(symbol, fresh.price)
        return fresh

    @log_function
    def refresh_tokens(self) -> List[Token]:
        return [t for t in (self.refresh_token(tok.symbol) for tok in self.tokens.list_all()) if t]

    # ---------- history ----------
    def record_price(self, symbol: str, price: float) -> None:
        with self._lock:
            hist = self._history.setdefault(symbol.upper(), deque(maxlen=self.history_size))
            hist.append(float(price))

    def history(self, symbol: str) -> List[float]:
        with self._lock:
            return list(self._history.get(symbol.upper(), ()))

    @log_function
    def snapshot(self, symbol: str) -> MarketSnapshot:
        token = self.refresh_token(symbol)
        if not token:
            return MarketSnapshot(symbol=symbol.upper())
        return MarketSnapshot(
            symbol=token.symbol,
            price=token.price,
            price_history=self.history(token.symbol),
            volume=token.volume,
            liquidity=token.liquidity,
        )
