from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dex_autotrader.enums.trading import RiskLevel, TradeAction


class CamelModel(BaseModel):
    """Request/response bodies use camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- trading ----------
class StartTradingDto(CamelModel):
    user_identity: Optional[str] = None
    ai_wallet_address: Optional[str] = None
    allocated_amount: Decimal


class StopTradingDto(CamelModel):
    session_id: int


class UpdateSessionDto(CamelModel):
    allocated_amount: Decimal


class TradeDetailsDto(CamelModel):
    action: TradeAction
    token_pair: str
    amount: Decimal = Field(ge=0)
    reasoning: List[str] = Field(default_factory=list)
    suggested_slippage: float = Field(default=0.5, ge=0)


class ManualTradeDto(CamelModel):
    session_id: int
    trade_details: Optional[TradeDetailsDto] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class SessionResponse(CamelModel):
    session_id: int
    user_identity: str
    ai_wallet_address: Optional[str] = None
    allocated_amount: str
    is_active: bool
    created_at: int
    updated_at: int
    pending_decision: Optional[dict] = None
    degraded: bool = False


# ---------- strategies ----------
class ToggleStrategyDto(CamelModel):
    enabled: bool


class RiskLevelDto(CamelModel):
    risk_level: RiskLevel


# ---------- trades ----------
class CreateTradeDto(CamelModel):
    token_a_id: int
    token_b_id: int
    amount_a: str
    amount_b: str
    is_ai: bool = Field(default=False, alias="isAI")
    tx_hash: Optional[str] = None
