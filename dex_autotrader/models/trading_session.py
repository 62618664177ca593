"""
Represents a user's allocated-funds trading session.

A session is created on the first allocation, flipped between active and
idle by start/stop, and never deleted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

class TradingSession(BaseModel):
    session_id: int
    user_identity: str
    ai_wallet_address: Optional[str] = None
    allocated_amount: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = False
    created_at: int = 0
    updated_at: int = 0
