"""
Token reference data: symbol, contract address, decimals and the latest
price and pool liquidity seen on DexScreener.
"""

from __future__ import annotations

from pydantic import BaseModel
import time


class Token(BaseModel):

    id: int
    symbol: str
    address: str
    decimals: int = 18
    name: str = ""
    price: float = 0.0
    liquidity: float = 0.0
    volume: float = 0.0
    pair_address: str = ""
    updated_at: int = 0

    def with_market(self, raw: dict) -> "Token":
        """Copy of this token refreshed from a DexScreener pair payload."""
        return self.model_copy(update={
            "pair_address": raw.get("pairAddress", self.pair_address) or self.pair_address,
            "name": (raw.get("baseToken") or {}).get("name", self.name) or self.name,
            "price": float(raw.get("priceUsd") or self.price or 0),
            "liquidity": float((raw.get("liquidity") or {}).get("usd", self.liquidity) or 0),
            "volume": float((raw.get("volume") or {}).get("h24", self.volume) or 0),
            "updated_at": int(time.time()),
        })
