from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query

from dex_autotrader.api.deps import get_ctx
from dex_autotrader.api.errors import error_response, failure_response
from dex_autotrader.api.schemas import (
    ManualTradeDto, SessionResponse, StartTradingDto, StopTradingDto, UpdateSessionDto,
)
from dex_autotrader.app_context import AppContext
from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.models.decision import Decision
from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

router = APIRouter(prefix="/trading", tags=["trading"])


def _session_response(ctx: AppContext, session: TradingSession) -> SessionResponse:
    engine = ctx.engines.get(session.session_id) if session.is_active else None
    status = engine.status() if engine else None
    pending = status.pending_decision.model_dump(mode="json") if status and status.pending_decision else None
    return SessionResponse(
        session_id=session.session_id,
        user_identity=session.user_identity,
        ai_wallet_address=session.ai_wallet_address,
        allocated_amount=str(session.allocated_amount),
        is_active=session.is_active,
        created_at=session.created_at,
        updated_at=session.updated_at,
        pending_decision=pending,
        degraded=bool(status and status.degraded),
    )


@router.post("/start")
def start_trading(
    dto: StartTradingDto,
    x_wallet_address: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_ctx),
):
    """Start (or keep) the auto-trading session for a wallet identity."""
    identity = dto.user_identity or x_wallet_address
    result = ctx.sessions.start(identity, dto.allocated_amount, ai_wallet_address=dto.ai_wallet_address)
    if not result.ok:
        return failure_response(result)
    return {"success": True, "sessionId": result.session_id}


@router.post("/stop")
def stop_trading(dto: StopTradingDto, ctx: AppContext = Depends(get_ctx)):
    result = ctx.sessions.stop(dto.session_id)
    if not result.ok:
        return failure_response(result)
    return {"success": True}


@router.patch("/session/{session_id}")
def update_session(session_id: int, dto: UpdateSessionDto, ctx: AppContext = Depends(get_ctx)):
    result = ctx.sessions.update_allocation(session_id, dto.allocated_amount)
    if not result.ok:
        return failure_response(result)
    return {"success": True}


@router.get("/status", response_model=List[SessionResponse], response_model_by_alias=True)
def trading_status(user_identity: str = Query(..., alias="userIdentity"), ctx: AppContext = Depends(get_ctx)):
    return [_session_response(ctx, s) for s in ctx.sessions.list_sessions(user_identity)]


@router.post("/manual-trade")
def manual_trade(dto: ManualTradeDto, ctx: AppContext = Depends(get_ctx)):
    """Confirm a decision by hand: the one in tradeDetails, or the engine's pending one."""
    engine = ctx.engines.get(dto.session_id)
    if dto.trade_details is None:
        if engine is None:
            return error_response(ErrorKind.NO_ACTIVE_SESSION, f"Session {dto.session_id} is not active")
        result = engine.execute_pending()
    else:
        details = dto.trade_details
        decision = Decision(
            action=details.action,
            token_pair=details.token_pair.upper(),
            amount=details.amount,
            confidence=dto.confidence,
            reasoning=details.reasoning,
            suggested_slippage=details.suggested_slippage,
        )
        result = engine.execute_manual(decision) if engine else ctx.executor.execute_manual(decision, dto.session_id)

    if not result.ok:
        return failure_response(result)
    return {
        "success": True,
        "noop": result.noop,
        "txHash": result.tx_hash,
        "trade": result.trade.model_dump(mode="json") if result.trade else None,
    }


@router.post("/sessions/{session_id}/cycle")
def run_cycle(session_id: int, ctx: AppContext = Depends(get_ctx)):
    """Run one decision cycle now instead of waiting for the timer."""
    engine = ctx.engines.get(session_id)
    if engine is None:
        return error_response(ErrorKind.NO_ACTIVE_SESSION, f"Session {session_id} is not active")
    result = engine.run_cycle()
    if not result.ok:
        return failure_response(result)
    return {
        "success": True,
        "noop": result.noop,
        "decision": result.decision.model_dump(mode="json") if result.decision else None,
        "txHash": result.tx_hash,
        "status": engine.status().model_dump(mode="json"),
    }
