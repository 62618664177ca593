from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dex_autotrader.api import strategies, trades, trading
from dex_autotrader.api.errors import trading_error_handler
from dex_autotrader.app_context import AppContext
from dex_autotrader.errors import TradingError
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)


def create_app(ctx: Optional[AppContext] = None, resume_sessions: bool = False) -> FastAPI:
    """FastAPI app serving the engine under /api. Builds a default AppContext when none is given."""
    ctx = ctx or AppContext()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if resume_sessions:
            ctx.resume_active_sessions()
        logger.info("🚀 dex_autotrader API started")
        yield
        ctx.shutdown()
        logger.info("dex_autotrader API stopped")

    app = FastAPI(
        title="dex_autotrader",
        description="AI-driven DEX trading sessions, decisions and swaps",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TradingError, trading_error_handler)

    app.include_router(trading.router, prefix="/api")
    app.include_router(strategies.router, prefix="/api")
    app.include_router(trades.router, prefix="/api")
    return app
