from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dex_autotrader.api.deps import get_ctx
from dex_autotrader.api.errors import error_response
from dex_autotrader.api.schemas import RiskLevelDto, ToggleStrategyDto
from dex_autotrader.app_context import AppContext
from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import RiskLevel
from dex_autotrader.models.strategy import Strategy

router = APIRouter(prefix="/strategies", tags=["strategies"])


@router.get("", response_model=List[Strategy])
def list_strategies(
    risk_level: Optional[RiskLevel] = Query(None, alias="riskLevel"),
    ctx: AppContext = Depends(get_ctx),
):
    if risk_level is not None:
        return ctx.strategies.visible_for(risk_level)
    return ctx.strategies.list()


@router.get("/{strategy_id}", response_model=Strategy)
def get_strategy(strategy_id: int, ctx: AppContext = Depends(get_ctx)):
    strategy = ctx.strategies.get(strategy_id)
    if strategy is None:
        return error_response(ErrorKind.NOT_FOUND, f"Strategy {strategy_id} not found")
    return strategy


@router.patch("/{strategy_id}", response_model=Strategy)
def toggle_strategy(strategy_id: int, dto: ToggleStrategyDto, ctx: AppContext = Depends(get_ctx)):
    """Enabling a strategy disables every other one."""
    return ctx.strategies.toggle(strategy_id, dto.enabled)


@router.post("/risk-level", response_model=List[Strategy])
def apply_risk_level(dto: RiskLevelDto, ctx: AppContext = Depends(get_ctx)):
    return ctx.strategies.apply_risk_level(dto.risk_level)
