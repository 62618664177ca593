# controllers/session_controller.py
from __future__ import annotations
import threading
from decimal import Decimal
from typing import Callable, List, Optional, Union

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError
from dex_autotrader.models.result import OperationResult
from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.repositories.session_repository import SessionRepository
from dex_autotrader.services.activity_journal import ActivityJournal
from dex_autotrader.services.wallet_service import WalletService
from dex_autotrader.utils.amounts import to_decimal
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

Amount = Union[Decimal, float, int, str]


class TradingSessionManager:
    """
    Session lifecycle: Idle --start--> Active --stop--> Idle.
      start(): identity -> AI wallet -> allocation > 0 -> persist -> arm engine
               idempotent while a session is already active for the identity
      stop(): deactivate -> disarm engine (in-flight results are discarded)
      update_allocation(): persist, then the engine applies it at the next cycle
    Sessions are never deleted. `engines` is anything with arm/disarm/update_allocation
    (see orchestrators.decision_orchestrator.DecisionEngineManager).
    """

    def __init__(self, sessions: SessionRepository, wallets: WalletService,
                 journal: ActivityJournal, engines=None) -> None:
        self.sessions = sessions
        self.wallets = wallets
        self.journal = journal
        self.engines = engines
        self._lock = threading.Lock()

    def _fail(self, err: TradingError, **payload) -> OperationResult:
        self.journal.error(err.reason)
        return OperationResult.from_error(err, **payload)

    @staticmethod
    def _positive(amount: Amount) -> Decimal:
        value = to_decimal(amount)
        if value <= 0:
            raise TradingError(ErrorKind.INVALID_AMOUNT, "Allocated amount must be greater than zero")
        return value

    # ---------- operations ----------
    @log_function
    def start(self, user_identity: Optional[str], allocated_amount: Amount,
              ai_wallet_address: Optional[str] = None,
              identity_lookup: Optional[Callable[[], Optional[str]]] = None) -> OperationResult:
        try:
            identity = self.wallets.resolve_identity(identity_lookup or (lambda: user_identity)).lower()
            allocation = self._positive(allocated_amount)

            with self._lock:
                active = self.sessions.get_active_for_user(identity)
                if active:
                    logger.info(f"Session {active.session_id} already active for {identity}")
                    return OperationResult.success(session_id=active.session_id, session=active, noop=True)

                if ai_wallet_address:
                    wallet = self.wallets.register_ai_wallet(identity, ai_wallet_address)
                else:
                    wallet = self.wallets.get_or_create_ai_wallet(identity)

                previous = self.sessions.list_for_user(identity)
                if previous:
                    session = self.sessions.reactivate(previous[0].session_id, wallet.address, allocation)
                else:
                    session = self.sessions.create(identity, wallet.address, allocation, is_active=True)
        except TradingError as err:
            return self._fail(err)

        if self.engines:
            self.engines.arm(session)
        self.journal.success(f"Auto-trading started with {allocation} allocated (session {session.session_id})")
        return OperationResult.success(session_id=session.session_id, session=session)

    @log_function
    def stop(self, session_id: int) -> OperationResult:
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or not session.is_active:
                return self._fail(TradingError(ErrorKind.NO_ACTIVE_SESSION, f"Session {session_id} is not active"),
                                  session_id=session_id)
            if self.engines:
                self.engines.disarm(session_id)
            self.sessions.deactivate(session_id)
            session = self.sessions.get(session_id)

        self.journal.info(f"Auto-trading stopped (session {session_id})")
        return OperationResult.success(session_id=session_id, session=session)

    @log_function
    def update_allocation(self, session_id: int, allocated_amount: Amount) -> OperationResult:
        try:
            allocation = self._positive(allocated_amount)
            with self._lock:
                session = self.sessions.get(session_id)
                if session is None or not session.is_active:
                    raise TradingError(ErrorKind.NO_ACTIVE_SESSION, f"Session {session_id} is not active")
                self.sessions.set_allocation(session_id, allocation)
                session = self.sessions.get(session_id)
        except TradingError as err:
            return self._fail(err, session_id=session_id)

        if self.engines:
            self.engines.update_allocation(session_id, allocation)
        self.journal.info(f"Allocation updated to {allocation} (session {session_id})")
        return OperationResult.success(session_id=session_id, session=session)

    # ---------- reads ----------
    def query(self, user_identity: str) -> Optional[TradingSession]:
        sessions = self.sessions.list_for_user(user_identity.lower())
        return sessions[0] if sessions else None

    def list_sessions(self, user_identity: str) -> List[TradingSession]:
        return self.sessions.list_for_user(user_identity.lower())

    def get(self, session_id: int) -> Optional[TradingSession]:
        return self.sessions.get(session_id)
