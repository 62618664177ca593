"""
Tests for controllers/swap_controller.py: floors, precision guard, provider
outcomes and trade recording.
"""

import threading
from decimal import Decimal

import pytest

from dex_autotrader.controllers.swap_controller import SwapExecutor
from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import LogType, TradeAction
from dex_autotrader.models.decision import Decision
from dex_autotrader.models.result import SwapResult


def _decision(action=TradeAction.BUY, amount="10", pair="USDC/WBTC", confidence=0.85) -> Decision:
    return Decision(action=action, token_pair=pair, amount=Decimal(amount), confidence=confidence,
                    reasoning=["test"], suggested_slippage=0.5)


@pytest.fixture
def session(ctx, started):
    return ctx.sessions.get(started.session_id)


class TestFloors:

    def test_buy_below_floor_is_raised_to_5(self, ctx, provider, session):
        result = ctx.executor.execute(_decision(amount="3"), session)

        assert result.ok
        assert provider.calls[0]["amount_in"] == 5_000_000  # USDC has 6 decimals
        assert provider.calls[0]["source"] == "USDC" and provider.calls[0]["dest"] == "WBTC"
        assert Decimal(result.trade.amount_a) == Decimal("5")
        assert any("minimum 5" in m for m in ctx.journal.messages())

    def test_sell_below_floor_is_raised_to_0_005(self, ctx, provider, session):
        result = ctx.executor.execute(_decision(TradeAction.SELL, amount="0.001"), session)

        assert result.ok
        assert provider.calls[0]["amount_in"] == 500_000  # WBTC has 8 decimals
        assert provider.calls[0]["source"] == "WBTC" and provider.calls[0]["dest"] == "USDC"
        assert Decimal(result.trade.amount_a) == Decimal("0.005")

    def test_amount_above_floor_is_untouched(self, ctx, provider, session):
        ctx.executor.execute(_decision(amount="12.345678"), session)
        assert provider.calls[0]["amount_in"] == 12_345_678
        assert not any("Adjusting" in m for m in ctx.journal.messages())


class TestPrecisionGuard:

    @pytest.fixture
    def unfloored(self, ctx, provider):
        return SwapExecutor(
            provider=provider, tokens=ctx.token_repo, trades=ctx.trade_repo, sessions=ctx.session_repo,
            manual_trades=ctx.manual_trade_repo, journal=ctx.journal, min_buy=Decimal("0"), min_sell=Decimal("0"),
        )

    @pytest.mark.parametrize("amount", ["0.00009", "0.0000001"])
    def test_tiny_amount_never_reaches_provider(self, ctx, provider, session, unfloored, amount):
        result = unfloored.execute(_decision(TradeAction.SELL, amount=amount), session)

        assert result.error == ErrorKind.AMOUNT_TOO_SMALL
        assert provider.calls == []
        assert ctx.trade_repo.count() == 0

    def test_minimum_safe_amount_passes(self, provider, session, unfloored):
        result = unfloored.execute(_decision(TradeAction.SELL, amount="0.0001"), session)
        assert result.ok
        assert provider.calls[0]["amount_in"] == 10_000

    def test_large_amount_on_18_decimal_token(self, ctx, provider, session):
        result = ctx.executor.execute(_decision(TradeAction.SELL, amount="100000000000", pair="USDC/WETH"), session)

        assert result.ok, result.reason
        assert provider.calls[0]["source"] == "WETH"
        assert provider.calls[0]["amount_in"] == 10 ** 29


class TestProviderOutcomes:

    def test_trade_records_reported_output(self, ctx, provider, session):
        provider.result = SwapResult(success=True, tx_hash="0xfeed", output_amount="0.00019600")
        result = ctx.executor.execute(_decision(amount="10"), session)

        trade = ctx.trade_repo.list_in_order()[-1]
        assert result.tx_hash == "0xfeed"
        assert trade.amount_b == "0.00019600"
        assert trade.amount_a == "10.000000"
        assert trade.token_a_id == 1 and trade.token_b_id == 2
        assert trade.is_ai and trade.session_id == session.session_id
        assert ctx.journal.entries(LogType.SUCCESS)[-1].message.startswith("Trade executed")

    def test_provider_failure(self, ctx, provider, session):
        provider.result = SwapResult(success=False, error="execution reverted")
        result = ctx.executor.execute(_decision(), session)

        assert result.error == ErrorKind.SWAP_FAILED
        assert "execution reverted" in result.reason
        assert ctx.trade_repo.count() == 0
        assert ctx.journal.entries(LogType.ERROR)

    def test_missing_output_amount_is_a_failure(self, ctx, provider, session):
        provider.result = SwapResult(success=True, tx_hash="0xbeef", output_amount=None)
        result = ctx.executor.execute(_decision(), session)

        assert result.error == ErrorKind.SWAP_FAILED
        assert ctx.trade_repo.count() == 0

    def test_provider_exception_is_swap_failed(self, ctx, provider, session):
        def boom(*_):
            raise RuntimeError("rpc down")

        provider.result = boom
        assert ctx.executor.execute(_decision(), session).error == ErrorKind.SWAP_FAILED

    def test_no_retry_on_failure(self, ctx, provider, session):
        provider.result = SwapResult(success=False, error="nope")
        ctx.executor.execute(_decision(), session)
        assert len(provider.calls) == 1

    def test_trades_follow_confirmation_order(self, ctx, provider, session):
        for amount in ("5", "6", "7"):
            ctx.executor.execute(_decision(amount=amount), session)
        assert [Decimal(t.amount_a) for t in ctx.trade_repo.list_in_order()] == [5, 6, 7]

    def test_recent_trades_cache_sees_new_trade(self, ctx, session):
        assert ctx.trade_repo.list_recent() == []
        ctx.executor.execute(_decision(), session)
        assert len(ctx.trade_repo.list_recent()) == 1


class TestValidation:

    def test_hold_is_a_noop(self, ctx, provider, session):
        result = ctx.executor.execute(_decision(TradeAction.HOLD), session)
        assert result.ok and result.noop
        assert provider.calls == []

    def test_unsupported_token(self, ctx, provider, session):
        result = ctx.executor.execute(_decision(pair="USDC/DOGE"), session)
        assert result.error == ErrorKind.UNSUPPORTED_TOKEN
        assert provider.calls == []

    def test_malformed_pair(self, ctx, session):
        assert ctx.executor.execute(_decision(pair="USDCWBTC"), session).error == ErrorKind.UNSUPPORTED_TOKEN

    def test_session_without_wallet(self, ctx, provider, session):
        anonymous = session.model_copy(update={"ai_wallet_address": None})
        assert ctx.executor.execute(_decision(), anonymous).error == ErrorKind.NO_IDENTITY
        assert provider.calls == []

    def test_cancelled_before_send(self, ctx, provider, session):
        token = threading.Event()
        token.set()
        result = ctx.executor.execute(_decision(), session, cancel_token=token)
        assert result.error == ErrorKind.CANCELLED
        assert provider.calls == []


class TestManual:

    def test_manual_execution_writes_audit_record(self, ctx, session):
        result = ctx.executor.execute_manual(_decision(confidence=0.5), session.session_id)

        assert result.ok
        records = ctx.manual_trade_repo.list_for_session(session.session_id)
        assert len(records) == 1
        assert records[0].confidence == 0.5
        assert records[0].trade_details["tx_hash"] == result.tx_hash

    def test_manual_requires_active_session(self, ctx, provider, session):
        ctx.sessions.stop(session.session_id)
        result = ctx.executor.execute_manual(_decision(), session.session_id)
        assert result.error == ErrorKind.NO_ACTIVE_SESSION
        assert provider.calls == []

    def test_manual_stop_during_swap_records_nothing(self, ctx, provider, session):
        provider.during_swap = lambda: ctx.session_repo.deactivate(session.session_id)

        result = ctx.executor.execute_manual(_decision(confidence=0.5), session.session_id)

        assert result.error == ErrorKind.CANCELLED
        assert ctx.trade_repo.count() == 0
        assert ctx.manual_trade_repo.list_for_session(session.session_id) == []
