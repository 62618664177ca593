# main.py
from __future__ import annotations
import os
import signal
import threading

from dotenv import load_dotenv

# .env must be loaded before the package reads its module-level settings
load_dotenv()

import uvicorn

from dex_autotrader.api import create_app
from dex_autotrader.app_context import AppContext
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

# ------------------------------
# Config
# ------------------------------
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "5000"))
REFRESH_TOKENS_ON_START = os.getenv("REFRESH_TOKENS_ON_START", "true").lower() == "true"

stop_all_evt = threading.Event()


def build_server(ctx: AppContext) -> uvicorn.Server:
    app = create_app(ctx, resume_sessions=True)
    config = uvicorn.Config(app, host=API_HOST, port=API_PORT, log_config=None)
    return uvicorn.Server(config)


def install_signal_handlers(ctx: AppContext, server: uvicorn.Server) -> None:
    def shutdown(signum, _frame):
        if stop_all_evt.is_set():
            return
        logger.info(f"🛑 Signal {signum} received, stopping engines and API...")
        stop_all_evt.set()
        ctx.shutdown()
        server.should_exit = True

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


# ------------------------------
# Main
# ------------------------------
if __name__ == "__main__":
    logger.info("🚀 Starting dex_autotrader (decision engines + API)...")
    ctx = AppContext()
    if REFRESH_TOKENS_ON_START:
        ctx.market.refresh_tokens()

    server = build_server(ctx)
    install_signal_handlers(ctx, server)
    server.run()
    logger.info("✅ Shutdown complete.")
