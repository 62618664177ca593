"""
A configured trading strategy.

Only one strategy may be enabled at a time across the whole system; the
registry in ``controllers.strategy_controller`` owns that rule.
"""

from __future__ import annotations

from pydantic import BaseModel

from dex_autotrader.enums.trading import RiskLevel


class Strategy(BaseModel):
    id: int
    name: str
    risk_level: RiskLevel = RiskLevel.MEDIUM
    enabled: bool = False
    has_limit_orders: bool = False
    is_memecoin: bool = False
