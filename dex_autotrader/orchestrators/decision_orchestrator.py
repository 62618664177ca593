# orchestrators/decision_orchestrator.py
from __future__ import annotations
import os
import threading
import time
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import TradeAction
from dex_autotrader.models.decision import Decision
from dex_autotrader.models.result import OperationResult
from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.services.activity_journal import ActivityJournal
from dex_autotrader.services.market_service import MarketService
from dex_autotrader.services.oracle_service import MarketOracle
from dex_autotrader.services.sizing_service import TradeSizer
from dex_autotrader.services.telegram_service import TelegramService
from dex_autotrader.controllers.strategy_controller import StrategyRegistry
from dex_autotrader.controllers.swap_controller import SwapExecutor
from dex_autotrader.utils.indicators import calculate_rsi
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

DECISION_INTERVAL_SECS = float(os.getenv("DECISION_INTERVAL_SECS", "60"))
CONFIDENCE_THRESHOLD = float(os.getenv("CONFIDENCE_THRESHOLD", "0.70"))
RSI_PERIODS = int(os.getenv("RSI_PERIODS", "14"))


class EngineStatus(BaseModel):
    session_id: int
    armed: bool
    allocated_amount: Decimal
    queued_allocation: Optional[Decimal] = None
    degraded: bool = False
    last_rsi: Optional[float] = None
    last_decision: Optional[Decision] = None
    pending_decision: Optional[Decision] = None
    cycles_run: int = 0
    cycles_skipped: int = 0
    last_cycle_at: Optional[float] = None


class DecisionEngine:
    """
    Periodic decision loop for one active session.
      snapshot -> RSI -> oracle -> sized Decision -> gating
        confidence > CONFIDENCE_THRESHOLD  -> SwapExecutor.execute
        otherwise                          -> parked as pending (replaces the previous one)
    - One cycle in flight at most: overlapping ticks are skipped and counted.
    - Manual executions take the same lock, so they never overlap a cycle or each other.
    - disarm() trips the cancellation token; a cycle that sees it discards its result.
    - update_allocation() is queued and applied when the next cycle starts.
    """

    def __init__(
        self,
        session: TradingSession,
        market: MarketService,
        oracle: MarketOracle,
        sizer: TradeSizer,
        strategies: StrategyRegistry,
        executor: SwapExecutor,
        journal: ActivityJournal,
        telegram: TelegramService | None = None,
        interval_secs: float = DECISION_INTERVAL_SECS,
        threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        self.session = session
        self.market = market
        self.oracle = oracle
        self.sizer = sizer
        self.strategies = strategies
        self.executor = executor
        self.journal = journal
        self.telegram = telegram
        self.interval_secs = interval_secs
        self.threshold = threshold

        self._allocation = Decimal(session.allocated_amount)
        self._queued_allocation: Optional[Decimal] = None
        self._pending: Optional[Decision] = None
        self._last_decision: Optional[Decision] = None
        self._last_rsi: Optional[float] = None
        self._degraded = False
        self._cycles_run = 0
        self._cycles_skipped = 0
        self._last_cycle_at: Optional[float] = None

        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._cancel = threading.Event()
        self._stop_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._armed = False

    @property
    def session_id(self) -> int:
        return self.session.session_id

    @property
    def armed(self) -> bool:
        return self._armed

    # ---------- lifecycle ----------
    def arm(self, background: bool = True) -> None:
        if self._armed:
            return
        self._cancel = threading.Event()
        self._stop_evt.clear()
        self._armed = True
        if background:
            self._thread = threading.Thread(
                target=self._run_loop, name=f"DecisionEngine-{self.session_id}", daemon=True
            )
            self._thread.start()
        logger.info(f"DecisionEngine armed for session {self.session_id} (every {self.interval_secs:.0f}s)")

    def disarm(self) -> None:
        self._armed = False
        self._cancel.set()
        self._stop_evt.set()
        with self._state_lock:
            self._pending = None
        logger.info(f"DecisionEngine disarmed for session {self.session_id}")

    def update_allocation(self, amount: Decimal) -> None:
        with self._state_lock:
            self._queued_allocation = Decimal(amount)
        logger.debug(f"Allocation {amount} queued for session {self.session_id}")

    @log_function
    def _run_loop(self) -> None:
        while not self._stop_evt.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.exception(f"Decision cycle error (session {self.session_id}): {e}")
                self.journal.error(f"Error: {e}")
            self._stop_evt.wait(self.interval_secs)

    # ---------- cycle ----------
    def run_cycle(self) -> OperationResult:
        if not self._armed:
            return OperationResult.failure(ErrorKind.NO_ACTIVE_SESSION, f"Session {self.session_id} is not armed",
                                           session_id=self.session_id)
        if not self._cycle_lock.acquire(blocking=False):
            with self._state_lock:
                self._cycles_skipped += 1
            logger.debug(f"Cycle skipped for session {self.session_id}: previous cycle still running")
            return OperationResult.success(session_id=self.session_id, noop=True, reason="cycle in progress")
        try:
            return self._cycle(self._cancel)
        finally:
            with self._state_lock:
                self._cycles_run += 1
                self._last_cycle_at = time.time()
            self._cycle_lock.release()

    def _discarded(self) -> OperationResult:
        logger.info(f"Cycle result discarded: session {self.session_id} was stopped")
        return OperationResult.failure(ErrorKind.CANCELLED, "Session stopped during the cycle",
                                       session_id=self.session_id)

    def _cycle(self, cancel: threading.Event) -> OperationResult:
        with self._state_lock:
            if self._queued_allocation is not None:
                self._allocation = self._queued_allocation
                self._queued_allocation = None
            allocation = self._allocation

        self.journal.info("Analyzing market conditions...")
        base_symbol = self.sizer.token_pair.split("/")[1]
        snapshot = self.market.snapshot(base_symbol)
        rsi = calculate_rsi(snapshot.price_history, RSI_PERIODS)
        self._last_rsi = rsi

        analysis = self.oracle.analyze(snapshot.price, snapshot.price_history, snapshot.volume, rsi)
        if cancel.is_set():
            return self._discarded()

        if not analysis.available:
            hold = Decision(action=TradeAction.HOLD, token_pair=self.sizer.token_pair, amount=Decimal("0"),
                            confidence=0.0, reasoning=list(analysis.reasoning))
            with self._state_lock:
                self._degraded = True
                self._last_decision = hold
            reason = analysis.reasoning[0] if analysis.reasoning else "oracle unavailable"
            self.journal.error(f"AI Analysis failed: {reason}")
            return OperationResult.failure(ErrorKind.ORACLE_UNAVAILABLE, reason,
                                           session_id=self.session_id, decision=hold)

        self._degraded = False
        self.journal.info(f"Analysis result: {analysis.action.value} with {analysis.confidence * 100:.0f}% confidence")
        if allocation <= 0:
            return OperationResult.success(session_id=self.session_id, noop=True, reason="nothing allocated")

        decision = self.sizer.size(analysis, allocation, snapshot.price, snapshot.liquidity, self.strategies.active())
        self.journal.info(
            f"DEX decision: {decision.action.value} {decision.amount} with {decision.confidence * 100:.0f}% confidence"
        )

        with self._state_lock:
            self._last_decision = decision
            self._pending = None

        if decision.action == TradeAction.HOLD:
            return OperationResult.success(session_id=self.session_id, decision=decision, noop=True)

        if decision.confidence > self.threshold:
            self.journal.info("Confidence threshold met, executing trade...")
            return self.executor.execute(decision, self._session_with(allocation), cancel_token=cancel)

        with self._state_lock:
            self._pending = decision
        self.journal.info(f"Confidence below threshold ({self.threshold * 100:.0f}%), awaiting manual confirmation")
        if self.telegram:
            self.telegram.notify_pending(self.session_id, decision)
        return OperationResult.success(session_id=self.session_id, decision=decision, reason="pending")

    def _session_with(self, allocation: Decimal) -> TradingSession:
        return self.session.model_copy(update={"allocated_amount": allocation})

    # ---------- manual ----------
    @property
    def pending(self) -> Optional[Decision]:
        with self._state_lock:
            return self._pending

    def _claim_pending(self) -> Optional[Decision]:
        with self._state_lock:
            decision, self._pending = self._pending, None
            return decision

    def _restore_pending(self, decision: Decision) -> None:
        # a newer decision or a stop wins over the one that failed
        with self._state_lock:
            if self._pending is None and not self._cancel.is_set():
                self._pending = decision

    @log_function
    def execute_pending(self) -> OperationResult:
        """Confirm the parked decision. The slot is claimed before the swap so it executes once."""
        with self._cycle_lock:
            decision = self._claim_pending()
            if decision is None:
                return OperationResult.failure(ErrorKind.NOT_FOUND, "No pending decision to execute",
                                               session_id=self.session_id)
            result = self.executor.execute_manual(decision, self.session_id, cancel_token=self._cancel)
            if not result.ok:
                self._restore_pending(decision)
            return result

    def execute_manual(self, decision: Decision) -> OperationResult:
        """Operator-supplied decision; waits for an in-flight cycle and honours stop."""
        with self._cycle_lock:
            result = self.executor.execute_manual(decision, self.session_id, cancel_token=self._cancel)
            if result.ok:
                with self._state_lock:
                    if self._pending == decision:
                        self._pending = None
            return result

    def status(self) -> EngineStatus:
        with self._state_lock:
            return EngineStatus(
                session_id=self.session_id,
                armed=self._armed,
                allocated_amount=self._allocation,
                queued_allocation=self._queued_allocation,
                degraded=self._degraded,
                last_rsi=self._last_rsi,
                last_decision=self._last_decision,
                pending_decision=self._pending,
                cycles_run=self._cycles_run,
                cycles_skipped=self._cycles_skipped,
                last_cycle_at=self._last_cycle_at,
            )


class DecisionEngineManager:
    """One DecisionEngine per active session, keyed by session id."""

    def __init__(self, factory: Callable[[TradingSession], DecisionEngine], background: bool = True) -> None:
        self.factory = factory
        self.background = background
        self._engines: Dict[int, DecisionEngine] = {}
        self._lock = threading.Lock()

    def arm(self, session: TradingSession) -> DecisionEngine:
        with self._lock:
            engine = self._engines.get(session.session_id)
            if engine is None or not engine.armed:
                engine = self.factory(session)
                self._engines[session.session_id] = engine
                engine.arm(background=self.background)
            return engine

    def disarm(self, session_id: int) -> None:
        with self._lock:
            engine = self._engines.pop(session_id, None)
        if engine:
            engine.disarm()

    def disarm_all(self) -> None:
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.disarm()

    def update_allocation(self, session_id: int, amount: Decimal) -> None:
        engine = self.get(session_id)
        if engine:
            engine.update_allocation(amount)

    def get(self, session_id: int) -> Optional[DecisionEngine]:
        with self._lock:
            return self._engines.get(session_id)

    def engines(self) -> List[DecisionEngine]:
        with self._lock:
            return list(self._engines.values())
