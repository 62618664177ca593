from typing import List

from fastapi import APIRouter, Depends, Query

from dex_autotrader.api.deps import get_ctx
from dex_autotrader.api.schemas import CreateTradeDto
from dex_autotrader.app_context import AppContext
from dex_autotrader.models.token import Token
from dex_autotrader.models.trade import Trade
from dex_autotrader.utils.amounts import to_decimal
from dex_autotrader.utils.indicators import calculate_avg_profit, calculate_win_rate

router = APIRouter(tags=["trades"])


@router.get("/trades", response_model=List[Trade])
def list_trades(limit: int = Query(100, ge=1, le=1000), ctx: AppContext = Depends(get_ctx)):
    return ctx.trade_repo.list_recent(limit)


@router.post("/trades", response_model=Trade, status_code=201)
def create_trade(dto: CreateTradeDto, ctx: AppContext = Depends(get_ctx)):
    """Record a trade made outside the engine (e.g. a manual swap from the wallet)."""
    to_decimal(dto.amount_a)
    to_decimal(dto.amount_b)
    return ctx.trade_repo.append(Trade(
        token_a_id=dto.token_a_id,
        token_b_id=dto.token_b_id,
        amount_a=dto.amount_a,
        amount_b=dto.amount_b,
        is_ai=dto.is_ai,
        tx_hash=dto.tx_hash,
    ))


@router.get("/trades/stats")
def trade_stats(ctx: AppContext = Depends(get_ctx)):
    trades = ctx.trade_repo.list_in_order()
    return {
        "totalTrades": len(trades),
        "aiTrades": sum(1 for t in trades if t.is_ai),
        "winRate": calculate_win_rate(trades),
        "avgProfit": calculate_avg_profit(trades),
    }


@router.get("/tokens", response_model=List[Token])
def list_tokens(ctx: AppContext = Depends(get_ctx)):
    return ctx.token_repo.list_all()


@router.get("/activity")
def activity(ctx: AppContext = Depends(get_ctx)):
    return [e.model_dump(mode="json") for e in ctx.journal.entries()]


@router.get("/health")
def health_check(ctx: AppContext = Depends(get_ctx)):
    return {
        "status": "ok",
        "activeEngines": len(ctx.engines.engines()),
        "oracle": type(ctx.oracle).__name__,
        "swapProvider": type(ctx.swap_provider).__name__,
    }
