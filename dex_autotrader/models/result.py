"""
Tagged results returned by session, strategy and execution operations.

``ok`` plus a closed ``ErrorKind`` replaces ad hoc ``{"ok": False, "reason": ...}``
dictionaries so callers can branch on the kind.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError
from dex_autotrader.models.decision import Decision
from dex_autotrader.models.trade import Trade
from dex_autotrader.models.trading_session import TradingSession


class OperationResult(BaseModel):
    ok: bool
    error: Optional[ErrorKind] = None
    reason: str = ""
    session_id: Optional[int] = None
    session: Optional[TradingSession] = None
    decision: Optional[Decision] = None
    trade: Optional[Trade] = None
    tx_hash: Optional[str] = None
    noop: bool = False

    @classmethod
    def success(cls, **payload) -> "OperationResult":
        return cls(ok=True, **payload)

    @classmethod
    def failure(cls, kind: ErrorKind, reason: str = "", **payload) -> "OperationResult":
        return cls(ok=False, error=kind, reason=reason or kind.value, **payload)

    @classmethod
    def from_error(cls, err: TradingError, **payload) -> "OperationResult":
        return cls.failure(err.kind, err.reason, **payload)


class SwapResult(BaseModel):
    """What a swap provider reports back."""

    success: bool
    tx_hash: Optional[str] = None
    output_amount: Optional[str] = None
    error: Optional[str] = None
