# app_context.py
from __future__ import annotations
import os
from typing import Optional

from dex_autotrader.controllers.session_controller import TradingSessionManager
from dex_autotrader.controllers.strategy_controller import StrategyRegistry
from dex_autotrader.controllers.swap_controller import SwapExecutor
from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.orchestrators.decision_orchestrator import DecisionEngine, DecisionEngineManager
from dex_autotrader.repositories.db import resolve_db_path
from dex_autotrader.repositories.manual_trade_repository import ManualTradeRepository
from dex_autotrader.repositories.session_repository import SessionRepository
from dex_autotrader.repositories.strategy_repository import StrategyRepository
from dex_autotrader.repositories.token_repository import TokenRepository
from dex_autotrader.repositories.trade_repository import TradeRepository
from dex_autotrader.repositories.wallet_repository import WalletRepository
from dex_autotrader.services.activity_journal import ActivityJournal
from dex_autotrader.services.market_service import MarketService
from dex_autotrader.services.oracle_service import MarketOracle, build_oracle
from dex_autotrader.services.sizing_service import TradeSizer
from dex_autotrader.services.swap_provider import SimulatedSwapProvider, SwapProvider, Web3SwapProvider
from dex_autotrader.services.telegram_service import TelegramService
from dex_autotrader.services.wallet_service import WalletService
from dex_autotrader.utils.config import load_config
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

SWAP_PROVIDER = os.getenv("SWAP_PROVIDER", "simulated").lower()  # simulated | web3


class AppContext:
    """
    Builds every repository, service and controller once and hands them out by
    reference. Collaborators (oracle, swap provider, market) can be injected.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        config: Optional[dict] = None,
        oracle: Optional[MarketOracle] = None,
        swap_provider: Optional[SwapProvider] = None,
        market: Optional[MarketService] = None,
        telegram: Optional[TelegramService] = None,
        mnemonic: Optional[str] = None,
        background: bool = True,
        interval_secs: Optional[float] = None,
    ) -> None:
        self.db_path = resolve_db_path(db_path)
        self.config = config or load_config()

        # ---------- stores ----------
        self.session_repo = SessionRepository(db_path=self.db_path)
        self.strategy_repo = StrategyRepository(db_path=self.db_path)
        self.trade_repo = TradeRepository(db_path=self.db_path)
        self.manual_trade_repo = ManualTradeRepository(db_path=self.db_path)
        self.wallet_repo = WalletRepository(db_path=self.db_path)
        self.token_repo = TokenRepository(db_path=self.db_path)
        self.token_repo.seed(self.config.get("tokens", []))
        self.strategy_repo.seed(self.config.get("strategies", []))

        # ---------- services ----------
        self.journal = ActivityJournal()
        self.telegram = telegram or TelegramService()
        self.wallets = WalletService(self.wallet_repo, mnemonic=mnemonic)
        self.market = market or MarketService(self.token_repo)
        self.oracle = oracle or build_oracle()
        self.swap_provider = swap_provider or self._build_swap_provider()
        self.sizer = TradeSizer()

        # ---------- controllers ----------
        self.strategies = StrategyRegistry(self.strategy_repo, self.journal)
        self.executor = SwapExecutor(
            provider=self.swap_provider,
            tokens=self.token_repo,
            trades=self.trade_repo,
            sessions=self.session_repo,
            manual_trades=self.manual_trade_repo,
            journal=self.journal,
            telegram=self.telegram,
        )
        self.interval_secs = interval_secs
        self.engines = DecisionEngineManager(self._build_engine, background=background)
        self.sessions = TradingSessionManager(self.session_repo, self.wallets, self.journal, self.engines)

    def _build_swap_provider(self) -> SwapProvider:
        if SWAP_PROVIDER == "web3":
            from dex_autotrader.services.web3_service import Web3Service
            return Web3SwapProvider(Web3Service(), self.wallets)
        logger.info("Using SimulatedSwapProvider (set SWAP_PROVIDER=web3 for on-chain swaps)")
        return SimulatedSwapProvider()

    def _build_engine(self, session: TradingSession) -> DecisionEngine:
        kwargs = {"interval_secs": self.interval_secs} if self.interval_secs is not None else {}
        return DecisionEngine(
            session=session,
            market=self.market,
            oracle=self.oracle,
            sizer=self.sizer,
            strategies=self.strategies,
            executor=self.executor,
            journal=self.journal,
            telegram=self.telegram,
            **kwargs,
        )

    def resume_active_sessions(self) -> int:
        """Re-arm engines for sessions left active by a previous process."""
        active = self.session_repo.list_active()
        for session in active:
            self.engines.arm(session)
        if active:
            logger.info(f"Resumed {len(active)} active session(s)")
        return len(active)

    def shutdown(self) -> None:
        self.engines.disarm_all()
        logger.info("All decision engines disarmed")
