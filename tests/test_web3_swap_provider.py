"""
Tests for services/swap_provider.Web3SwapProvider against a fake router service.
"""

from decimal import Decimal

import pytest

from dex_autotrader.models.token import Token
from dex_autotrader.services.swap_provider import Web3SwapProvider


class FakeAccount:
    address = "0x00000000000000000000000000000000000000A1"


class FakeWallets:
    def signer_for(self, user_identity):
        return FakeAccount()


class FakeRouter:
    """Web3Service stand-in: fixed quote, scripted receipt and transfer amount."""

    router_address = "0x00000000000000000000000000000000000000F0"

    def __init__(self, quote=20_000, allowance=0, status=1, received=19_800, dry_run=False):
        self.quote = quote
        self._allowance = allowance
        self.status = status
        self.received = received
        self.dry_run = dry_run
        self.sent = []
        self.swap_args = None

    def get_amounts_out(self, amount_in, path):
        return [amount_in, self.quote]

    def allowance(self, token, owner, spender):
        return self._allowance

    def build_approve(self, token, owner, amount):
        return {"kind": "approve", "amount": amount}

    def build_swap_exact_tokens_for_tokens(self, owner, amount_in, amount_out_min, path):
        self.swap_args = (owner, amount_in, amount_out_min, path)
        return {"kind": "swap"}

    def sign_and_send(self, tx, account):
        self.sent.append(tx["kind"])
        return f"0x{len(self.sent):064x}"

    def wait_for_receipt(self, tx_hash):
        return {"status": self.status, "logs": []}

    def received_amount(self, receipt, token, recipient):
        return self.received


USDC = Token(id=1, symbol="USDC", address="0x01", decimals=6)
WBTC = Token(id=2, symbol="WBTC", address="0x02", decimals=8)


class TestWeb3SwapProvider:

    def test_approves_then_swaps(self):
        router = FakeRouter(allowance=0)
        result = Web3SwapProvider(router, FakeWallets()).swap(USDC, WBTC, 5_000_000, 1.0, "0xuser")

        assert result.success
        assert router.sent == ["approve", "swap"]
        assert router.swap_args[2] == 19_800  # quote 20000 minus 1%
        assert Decimal(result.output_amount) == Decimal("0.000198")

    def test_skips_approve_with_allowance(self):
        router = FakeRouter(allowance=10 ** 30)
        Web3SwapProvider(router, FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xuser")
        assert router.sent == ["swap"]

    def test_reverted_transaction(self):
        result = Web3SwapProvider(FakeRouter(status=0), FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xuser")
        assert not result.success
        assert result.error == "Transaction reverted"

    def test_missing_transfer_log_reports_no_output(self):
        result = Web3SwapProvider(FakeRouter(received=None), FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xu")
        assert result.success
        assert result.output_amount is None

    def test_no_liquidity(self):
        result = Web3SwapProvider(FakeRouter(quote=0), FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xuser")
        assert not result.success
        assert "No liquidity" in result.error

    def test_dry_run_returns_quote_without_sending(self):
        router = FakeRouter(dry_run=True)
        result = Web3SwapProvider(router, FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xuser")
        assert result.success and router.sent == []
        assert Decimal(result.output_amount) == Decimal("0.0002")

    @pytest.mark.parametrize("error", [RuntimeError("rpc"), ValueError("bad")])
    def test_errors_become_failed_results(self, error):
        class Broken(FakeRouter):
            def get_amounts_out(self, amount_in, path):
                raise error

        result = Web3SwapProvider(Broken(), FakeWallets()).swap(USDC, WBTC, 5_000_000, 0.5, "0xuser")
        assert not result.success
        assert str(error) in result.error


class TestReceivedAmount:
    """Web3Service.received_amount only needs address checksumming, so it runs without a node."""

    TOKEN = "0x00000000000000000000000000000000000000b2"
    OWNER = "0x00000000000000000000000000000000000000a1"

    @pytest.fixture
    def service(self):
        from web3 import Web3
        from dex_autotrader.services.web3_service import Web3Service

        svc = Web3Service.__new__(Web3Service)
        svc._w3 = Web3()
        return svc

    def _log(self, token, to, amount):
        from dex_autotrader.services.web3_service import TRANSFER_TOPIC

        return {
            "address": token,
            "topics": [bytes.fromhex(TRANSFER_TOPIC.removeprefix("0x")), bytes(32),
                       bytes(12) + bytes.fromhex(to[2:])],
            "data": amount.to_bytes(32, "big"),
        }

    def test_sums_transfers_to_recipient(self, service):
        receipt = {"logs": [
            self._log(self.TOKEN, self.OWNER, 19_000),
            self._log(self.TOKEN, "0x00000000000000000000000000000000000000c3", 5),
            self._log(self.TOKEN, self.OWNER, 800),
        ]}
        assert service.received_amount(receipt, self.TOKEN, self.OWNER) == 19_800

    def test_other_token_is_ignored(self, service):
        receipt = {"logs": [self._log("0x00000000000000000000000000000000000000d4", self.OWNER, 1)]}
        assert service.received_amount(receipt, self.TOKEN, self.OWNER) is None
