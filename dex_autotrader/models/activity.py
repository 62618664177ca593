from __future__ import annotations

import time
from typing import Any, Dict

from pydantic import BaseModel, Field

from dex_autotrader.enums.trading import LogType


class ActivityLogEntry(BaseModel):
    message: str
    type: LogType = LogType.INFO
    timestamp: float = Field(default_factory=time.time)


class ManualTradeRecord(BaseModel):
    """Audit row written whenever an operator confirms a pending decision."""

    id: int | None = None
    session_id: int
    trade_details: Dict[str, Any]
    confidence: float
    created_at: int = Field(default_factory=lambda: int(time.time()))


class AIWallet(BaseModel):
    user_identity: str
    address: str
    derivation_index: int
    created_at: int = Field(default_factory=lambda: int(time.time()))
