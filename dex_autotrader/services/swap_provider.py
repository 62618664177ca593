"""
Swap providers: the boundary between the executor and the chain.

A provider receives an exact input amount in base units and reports either a
transaction hash with the realized output amount, or an error string. It
never raises for an ordinary swap failure.
"""

from __future__ import annotations

import os
import secrets
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Optional

from dex_autotrader.models.result import SwapResult
from dex_autotrader.models.token import Token
from dex_autotrader.utils.amounts import from_base_units
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

SIMULATED_PRICE_IMPACT = Decimal(os.getenv("SIMULATED_PRICE_IMPACT", "0.02"))
SIMULATED_MIN_BASE_UNITS = int(os.getenv("SIMULATED_MIN_BASE_UNITS", "1000"))


class SwapProvider(ABC):
    @abstractmethod
    def swap(self, source: Token, dest: Token, amount_in: int, slippage: float, signer: str) -> SwapResult:
        """Swap exactly ``amount_in`` base units of ``source`` for ``dest`` on behalf of ``signer``."""


class SimulatedSwapProvider(SwapProvider):
    """
    Paper-trading provider: no chain access.
    Output = input value converted at the tokens' USD prices minus a fixed
    price impact (2% by default). Without prices, the input quantity is
    reused as the output quantity minus the impact.
    """

    def __init__(self, price_lookup: Optional[Callable[[Token], float]] = None,
                 price_impact: Decimal = SIMULATED_PRICE_IMPACT) -> None:
        self.price_lookup = price_lookup or (lambda t: t.price)
        self.price_impact = price_impact

    @log_function
    def swap(self, source: Token, dest: Token, amount_in: int, slippage: float, signer: str) -> SwapResult:
        if amount_in <= 0 or amount_in < SIMULATED_MIN_BASE_UNITS:
            return SwapResult(success=False, error="Amount too small to process safely")

        qty_in = from_base_units(amount_in, source.decimals)
        price_in = Decimal(str(self.price_lookup(source) or 0))
        price_out = Decimal(str(self.price_lookup(dest) or 0))
        if price_in > 0 and price_out > 0:
            qty_out = qty_in * price_in / price_out
        else:
            qty_out = qty_in
        qty_out = qty_out * (Decimal(1) - self.price_impact)

        quantum = Decimal(1).scaleb(-dest.decimals)
        output = format(qty_out.quantize(quantum), "f")
        tx_hash = "0x" + secrets.token_hex(32)
        logger.info(f"[SIMULATED] {signer}: {qty_in} {source.symbol} -> {output} {dest.symbol} ({tx_hash[:10]}…)")
        return SwapResult(success=True, tx_hash=tx_hash, output_amount=output)


class Web3SwapProvider(SwapProvider):
    """
    Uniswap-V2 style router swap signed by the user's AI wallet.
      1) quote getAmountsOut and apply slippage -> amountOutMin
      2) approve the router when the allowance is short
      3) swapExactTokensForTokens, wait for the receipt
      4) realized output = Transfer(dest -> signer) in the receipt logs
    """

    def __init__(self, web3_service, wallet_service) -> None:
        self.w3s = web3_service
        self.wallets = wallet_service

    @log_function
    def swap(self, source: Token, dest: Token, amount_in: int, slippage: float, signer: str) -> SwapResult:
        try:
            account = self.wallets.signer_for(signer)
            owner = account.address
            path = [source.address, dest.address]

            quoted = self.w3s.get_amounts_out(amount_in, path)[-1]
            amount_out_min = int(quoted * (1 - slippage / 100.0))
            if amount_out_min <= 0:
                return SwapResult(success=False, error="No liquidity for path (amountOutMin = 0)")

            if self.w3s.dry_run:
                # quote only, nothing is signed
                return SwapResult(success=True, tx_hash="0x" + "0" * 64,
                                  output_amount=format(from_base_units(quoted, dest.decimals), "f"))

            if self.w3s.allowance(source.address, owner, self.w3s.router_address) < amount_in:
                approve_tx = self.w3s.build_approve(source.address, owner, amount_in)
                approve_hash = self.w3s.sign_and_send(approve_tx, account)
                self.w3s.wait_for_receipt(approve_hash)

            tx = self.w3s.build_swap_exact_tokens_for_tokens(owner, amount_in, amount_out_min, path)
            tx_hash = self.w3s.sign_and_send(tx, account)
            receipt = self.w3s.wait_for_receipt(tx_hash)
            if int(receipt.get("status", 0)) != 1:
                return SwapResult(success=False, tx_hash=tx_hash, error="Transaction reverted")

            received = self.w3s.received_amount(receipt, dest.address, owner)
            output = format(from_base_units(received, dest.decimals), "f") if received else None
            return SwapResult(success=True, tx_hash=tx_hash, output_amount=output)
        except Exception as e:
            logger.error(f"✗ web3 swap {source.symbol}->{dest.symbol} failed: {e}")
            return SwapResult(success=False, error=str(e))
