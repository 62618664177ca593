# controllers/swap_controller.py
from __future__ import annotations
import os
import threading
from decimal import Decimal
from typing import Optional, Tuple, Union

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import TradeAction
from dex_autotrader.errors import TradingError
from dex_autotrader.models.decision import Decision
from dex_autotrader.models.result import OperationResult, SwapResult
from dex_autotrader.models.token import Token
from dex_autotrader.models.trade import Trade
from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.repositories.manual_trade_repository import ManualTradeRepository
from dex_autotrader.repositories.session_repository import SessionRepository
from dex_autotrader.repositories.token_repository import TokenRepository
from dex_autotrader.repositories.trade_repository import TradeRepository
from dex_autotrader.services.activity_journal import ActivityJournal
from dex_autotrader.services.swap_provider import SwapProvider
from dex_autotrader.services.telegram_service import TelegramService
from dex_autotrader.utils.amounts import ensure_safe_amount, format_fixed, to_base_units, to_decimal
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

# ----------------- floors (input-token units) -----------------
MIN_BUY_AMOUNT = Decimal(os.getenv("MIN_BUY_AMOUNT", "5"))      # quote token, e.g. USDC
MIN_SELL_AMOUNT = Decimal(os.getenv("MIN_SELL_AMOUNT", "0.005"))  # base token, e.g. WBTC
MIN_SAFE_AMOUNT = Decimal(os.getenv("MIN_SAFE_AMOUNT", "0.0001"))


class SessionStopped:
    """Cancellation token backed by the stored session: set once the session is no longer active."""

    def __init__(self, sessions: SessionRepository, session_id: int) -> None:
        self.sessions = sessions
        self.session_id = session_id

    def is_set(self) -> bool:
        session = self.sessions.get(self.session_id)
        return session is None or not session.is_active


CancelToken = Union[threading.Event, SessionStopped]


class SwapExecutor:
    """
    Safety layer between a Decision and the SwapProvider. Checks run in order:
      HOLD -> no-op
      identity        -> NO_IDENTITY
      token lookup    -> UNSUPPORTED_TOKEN
      minimum floors  -> amount raised to MIN_BUY_AMOUNT / MIN_SELL_AMOUNT (journaled)
      precision guard -> AMOUNT_TOO_SMALL, provider never called
      fixed-point text at the input token decimals -> base units
      provider swap   -> SWAP_FAILED (no retry); missing output amount is a failure too
      cancellation    -> CANCELLED, nothing recorded
      Trade appended with requested input and reported output
    """

    def __init__(
        self,
        provider: SwapProvider,
        tokens: TokenRepository,
        trades: TradeRepository,
        sessions: SessionRepository,
        manual_trades: ManualTradeRepository,
        journal: ActivityJournal,
        telegram: TelegramService | None = None,
        min_buy: Decimal = MIN_BUY_AMOUNT,
        min_sell: Decimal = MIN_SELL_AMOUNT,
        min_safe: Decimal = MIN_SAFE_AMOUNT,
    ) -> None:
        self.provider = provider
        self.tokens = tokens
        self.trades = trades
        self.sessions = sessions
        self.manual_trades = manual_trades
        self.journal = journal
        self.telegram = telegram
        self.min_buy = Decimal(min_buy)
        self.min_sell = Decimal(min_sell)
        self.min_safe = Decimal(min_safe)

    # ---------- helpers ----------
    def _resolve_tokens(self, decision: Decision) -> Tuple[Token, Token]:
        """(source, dest): BUY spends the quote token, SELL spends the base token."""
        try:
            quote_symbol, base_symbol = decision.quote_symbol, decision.base_symbol
        except IndexError:
            raise TradingError(ErrorKind.UNSUPPORTED_TOKEN, f"Malformed token pair '{decision.token_pair}'")
        quote = self.tokens.get_by_symbol(quote_symbol)
        base = self.tokens.get_by_symbol(base_symbol)
        if quote is None or base is None:
            missing = quote_symbol if quote is None else base_symbol
            raise TradingError(ErrorKind.UNSUPPORTED_TOKEN, f"Token {missing} is not supported")
        if decision.action == TradeAction.BUY:
            return quote, base
        return base, quote

    def _apply_floor(self, decision: Decision, source: Token) -> Decimal:
        amount = to_decimal(decision.amount)
        floor = self.min_buy if decision.action == TradeAction.BUY else self.min_sell
        if amount < floor:
            self.journal.info(
                f"Adjusting {decision.action.value} amount from {amount} to minimum {floor} {source.symbol}"
            )
            return floor
        return amount

    @staticmethod
    def _cancelled(cancel_token: Optional[CancelToken]) -> bool:
        return cancel_token is not None and cancel_token.is_set()

    def _fail(self, err: TradingError, decision: Decision) -> OperationResult:
        self.journal.error(f"Trade {decision.action.value} {decision.token_pair} failed: {err.reason}")
        if self.telegram and err.kind == ErrorKind.SWAP_FAILED:
            self.telegram.notify_error(f"{decision.action.value} {decision.token_pair}: {err.reason}")
        return OperationResult.from_error(err, decision=decision)

    # ---------- public ----------
    @log_function
    def execute(self, decision: Decision, session: TradingSession,
                cancel_token: Optional[CancelToken] = None) -> OperationResult:
        if decision.action == TradeAction.HOLD:
            return OperationResult.success(noop=True, decision=decision, session_id=session.session_id)

        try:
            if not session.user_identity or not session.ai_wallet_address:
                raise TradingError(ErrorKind.NO_IDENTITY, "Session has no connected wallet identity")

            source, dest = self._resolve_tokens(decision)
            amount = self._apply_floor(decision, source)
            amount = ensure_safe_amount(amount, self.min_safe)
            amount_text = format_fixed(amount, source.decimals)
            amount_in = to_base_units(amount_text, source.decimals)

            if self._cancelled(cancel_token):
                raise TradingError(ErrorKind.CANCELLED, "Session stopped before the swap was sent")

            logger.info(f"Executing {decision.action.value}: {amount_text} {source.symbol} -> {dest.symbol} "
                        f"(slippage {decision.suggested_slippage}%)")
            try:
                result: SwapResult = self.provider.swap(
                    source, dest, amount_in, decision.suggested_slippage, session.user_identity
                )
            except Exception as e:
                logger.exception(f"Swap provider raised: {e}")
                raise TradingError(ErrorKind.SWAP_FAILED, str(e))

            if not result.success:
                raise TradingError(ErrorKind.SWAP_FAILED, result.error or "Swap failed")
            if result.output_amount is None:
                raise TradingError(ErrorKind.SWAP_FAILED,
                                   f"Swap {result.tx_hash} reported no output amount; trade not recorded")

            if self._cancelled(cancel_token):
                logger.warning(f"Swap {result.tx_hash} confirmed after stop; result discarded")
                raise TradingError(ErrorKind.CANCELLED, "Session stopped while the swap was in flight")

            trade = self.trades.append(Trade(
                token_a_id=source.id,
                token_b_id=dest.id,
                amount_a=amount_text,
                amount_b=result.output_amount,
                is_ai=True,
                tx_hash=result.tx_hash,
                session_id=session.session_id,
            ))
            self.trades.invalidate()
        except TradingError as err:
            return self._fail(err, decision)

        self.journal.success(
            f"Trade executed: {amount_text} {source.symbol} → {result.output_amount} {dest.symbol}"
        )
        return OperationResult.success(
            session_id=session.session_id,
            decision=decision,
            trade=trade,
            tx_hash=result.tx_hash,
        )

    @log_function
    def execute_manual(self, decision: Decision, session_id: int,
                       cancel_token: Optional[CancelToken] = None) -> OperationResult:
        """
        Operator-confirmed execution; the session must be active. Writes an audit record on success.
        Without a token from the engine, a stop is detected by re-reading the stored session.
        """
        session = self.sessions.get(session_id)
        if session is None or not session.is_active:
            err = TradingError(ErrorKind.NO_ACTIVE_SESSION, f"Session {session_id} is not active")
            return self._fail(err, decision)

        token = cancel_token if cancel_token is not None else SessionStopped(self.sessions, session_id)
        result = self.execute(decision, session, cancel_token=token)
        if result.ok and not result.noop:
            self.manual_trades.record(
                session_id,
                {**decision.model_dump(mode="json"), "tx_hash": result.tx_hash},
                decision.confidence,
            )
        return result
