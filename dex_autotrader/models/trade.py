"""
A confirmed swap.

Rows are written only after the swap provider reported success. ``amount_a``
is the input that was sent, ``amount_b`` the output the provider reported.
"""

from __future__ import annotations

import time
from typing import Optional

from pydantic import BaseModel, Field

class Trade(BaseModel):
    id: Optional[int] = None
    token_a_id: int
    token_b_id: int
    amount_a: str
    amount_b: str
    is_ai: bool = True
    tx_hash: Optional[str] = None
    session_id: Optional[int] = None
    created_at: int = Field(default_factory=lambda: int(time.time()))
