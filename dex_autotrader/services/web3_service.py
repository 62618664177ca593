from __future__ import annotations
import os
from typing import Any, List, Optional, Callable
from time import time, sleep

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import TxReceipt
from web3.exceptions import ContractLogicError
from eth_account.signers.local import LocalAccount

from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

# ---------- ENV ----------
# Comma-separated RPC list for failover; the first one that connects wins.
_RPC_ENV = (
    os.getenv("RPC_URLS")
    or os.getenv("RPC_URL")
    or "https://ethereum-sepolia-rpc.publicnode.com"
)
DEFAULT_RPC_URLS = [u.strip().rstrip("/") for u in _RPC_ENV.split(",") if u.strip()]

ROUTER_ADDRESS   = os.getenv("ROUTER_ADDRESS", "0xeE567Fe1712Faf6149d80dA1E6934E354124CfE3")
DRY_RUN          = os.getenv("DRY_RUN", "true").lower() == "true"
SWAP_DEADLINE_SECS = int(os.getenv("SWAP_DEADLINE_SECS", "300"))
RECEIPT_TIMEOUT_SECS = int(os.getenv("RECEIPT_TIMEOUT_SECS", "180"))

REQUEST_TIMEOUT_SECS   = float(os.getenv("RPC_TIMEOUT_SECS", "30"))
RETRY_RPC_TIMES        = int(os.getenv("RPC_RETRIES", "3"))
RETRY_BACKOFF_SECS     = float(os.getenv("RPC_RETRY_BACKOFF_SECS", "0.4"))

# GAS_MODE: auto | legacy | 1559
GAS_MODE               = os.getenv("GAS_MODE", "auto").lower()
GAS_PRICE_WEI_OVERRIDE = int(os.getenv("GAS_PRICE_WEI", "0"))  # forces gasPrice when > 0
PRIORITY_FEE_GWEI      = float(os.getenv("PRIORITY_FEE_GWEI", "1.5"))
MAX_FEE_MULTIPLIER     = float(os.getenv("MAX_FEE_MULTIPLIER", "2.0"))  # maxFee ~= baseFee*mult + priority
GAS_LIMIT_MULTIPLIER   = float(os.getenv("GAS_LIMIT_MULTIPLIER", "1.20"))
DEFAULT_SWAP_GAS_LIMIT = int(os.getenv("DEFAULT_SWAP_GAS_LIMIT", "350000"))

TRANSFER_TOPIC = Web3.keccak(text="Transfer(address,address,uint256)").hex()

ERC20_ABI = [
    {"constant": True, "inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}],
     "stateMutability": "view", "type": "function"},
    {"constant": True, "inputs": [{"name": "owner", "type": "address"}], "name": "balanceOf",
     "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"constant": True, "inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
     "name": "allowance", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"constant": False, "inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
     "name": "approve", "outputs": [{"name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
]

ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "uint256", "name": "amountOutMin", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactTokensForTokens",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class Web3Service:
    def __init__(self, rpc_url: Optional[str] = None, router_address: Optional[str] = None) -> None:
        # RPC list with failover
        self._rpc_urls: List[str] = [rpc_url] if rpc_url else list(DEFAULT_RPC_URLS)
        self._current_rpc_idx = -1
        self._connect_first_ok()

        self._router_addr = self._w3.to_checksum_address(router_address or ROUTER_ADDRESS)
        self._router = self._w3.eth.contract(address=self._router_addr, abi=ROUTER_ABI)

        self._gas_mode = self._detect_gas_mode()
        try:
            chain = self._w3.eth.chain_id
        except Exception:
            chain = "?"
        logger.debug(f"Connected to {self._active_rpc}; chain_id={chain}; gas_mode={self._gas_mode}")

    # ---------- connection / failover ----------
    def _connect(self, url: str) -> Web3:
        w3 = Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": REQUEST_TIMEOUT_SECS}))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        if not w3.is_connected():
            raise ConnectionError(f"Node not reachable: {url}")
        return w3

    def _connect_first_ok(self) -> None:
        last_err: Optional[Exception] = None
        for idx, url in enumerate(self._rpc_urls):
            try:
                self._w3 = self._connect(url)
                self._current_rpc_idx = idx
                self._active_rpc = url
                return
            except Exception as e:
                last_err = e
                logger.warning(f"RPC failed {url}: {e}")
        raise last_err or ConnectionError("No RPC available.")

    def _rotate_and_reconnect(self) -> None:
        if not self._rpc_urls:
            raise ConnectionError("No RPC configured.")
        self._current_rpc_idx = (self._current_rpc_idx + 1) % len(self._rpc_urls)
        url = self._rpc_urls[self._current_rpc_idx]
        logger.info(f"Switching RPC: {url}")
        self._w3 = self._connect(url)
        self._active_rpc = url

    def _rpc_call(self, label: str, fn: Callable[[], Any], retries: int = RETRY_RPC_TIMES) -> Any:
        """
        Read-only RPC call with retries and provider failover.
        Never used for send_raw_transaction: a resubmission could land twice.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(1, retries + 1):
            try:
                return fn()
            except ContractLogicError:
                raise
            except Exception as e:
                last_exc = e
                logger.warning(f"[RPC:{label}] attempt {attempt}/{retries} failed: {e}")
                try:
                    self._rotate_and_reconnect()
                except Exception as e2:
                    logger.warning(f"[RPC:{label}] failover failed: {e2}")
                sleep(RETRY_BACKOFF_SECS * attempt)
        raise last_exc if last_exc else RuntimeError(f"RPC '{label}' failed without exception.")

    # ---------- util ----------
    @property
    def router_address(self) -> str:
        return self._router_addr

    @property
    def dry_run(self) -> bool:
        return DRY_RUN

    def checksum(self, address: str) -> str:
        return self._w3.to_checksum_address(address)

    def load_erc20(self, address: str):
        return self._w3.eth.contract(address=self.checksum(address), abi=ERC20_ABI)

    # ---------- gas ----------
    def _detect_gas_mode(self) -> str:
        if GAS_MODE in ("legacy", "1559"):
            return GAS_MODE
        try:
            latest = self._rpc_call("get_block_latest", lambda: self._w3.eth.get_block("latest"))
            if latest.get("baseFeePerGas", None) is not None:
                return "1559"
        except Exception as e:
            logger.debug(f"gas mode detection fell back to legacy: {e}")
        return "legacy"

    def _apply_gas_fields(self, tx: dict) -> dict:
        """
        Sets only the fields of the active gas mode, avoiding
        'both gasPrice and (maxFeePerGas or maxPriorityFeePerGas) specified'.
        """
        for k in ("gasPrice", "maxFeePerGas", "maxPriorityFeePerGas", "accessList"):
            tx.pop(k, None)

        if self._gas_mode == "1559":
            tx["type"] = 2
            latest = self._rpc_call("get_block_latest", lambda: self._w3.eth.get_block("latest"))
            base_fee = int(latest.get("baseFeePerGas") or self._rpc_call("gas_price", lambda: self._w3.eth.gas_price))
            try:
                priority = int(self._rpc_call("max_priority_fee", lambda: self._w3.eth.max_priority_fee))
            except Exception:
                priority = int(Web3.to_wei(PRIORITY_FEE_GWEI, "gwei"))
            tx["maxPriorityFeePerGas"] = priority
            tx["maxFeePerGas"] = int(base_fee * MAX_FEE_MULTIPLIER + priority)
        else:
            tx["type"] = 0
            gas_price = GAS_PRICE_WEI_OVERRIDE or int(self._rpc_call("gas_price", lambda: self._w3.eth.gas_price))
            tx["gasPrice"] = int(gas_price)
        return tx

    def _finalize_gas(self, tx: dict, label: str) -> dict:
        tx = self._apply_gas_fields(tx)
        if DRY_RUN:
            tx["gas"] = DEFAULT_SWAP_GAS_LIMIT
            return tx
        estimated = int(self._rpc_call(label, lambda: self._w3.eth.estimate_gas(tx)))
        tx["gas"] = int(estimated * GAS_LIMIT_MULTIPLIER)
        return tx

    def _base_tx(self, sender: str) -> dict:
        return {
            "from": sender,
            "nonce": self._rpc_call("get_transaction_count", lambda: self._w3.eth.get_transaction_count(sender)),
            "chainId": self._rpc_call("chain_id", lambda: self._w3.eth.chain_id),
        }

    # ---------- quotes ----------
    @log_function
    def get_amounts_out(self, amount_in: int, path: List[str]) -> list[int]:
        path_cs = [self.checksum(p) for p in path]
        if int(amount_in) <= 0:
            return [0] * len(path_cs)
        amounts = self._rpc_call(
            "router.getAmountsOut",
            lambda: self._router.functions.getAmountsOut(int(amount_in), path_cs).call()
        )
        return [int(x) for x in amounts]

    # ---------- builders ----------
    def allowance(self, token_address: str, owner: str, spender: str) -> int:
        erc20 = self.load_erc20(token_address)
        return int(self._rpc_call(
            "allowance",
            lambda: erc20.functions.allowance(self.checksum(owner), self.checksum(spender)).call()
        ))

    def build_approve(self, token_address: str, owner: str, amount: int) -> dict:
        erc20 = self.load_erc20(token_address)
        tx = erc20.functions.approve(self._router_addr, int(amount)).build_transaction(self._base_tx(owner))
        return self._finalize_gas(tx, "estimate_gas_approve")

    @log_function
    def build_swap_exact_tokens_for_tokens(
        self,
        owner: str,
        amount_in: int,
        amount_out_min: int,
        path: List[str],
        deadline_secs_from_now: int = SWAP_DEADLINE_SECS,
    ) -> dict:
        path_cs = [self.checksum(p) for p in path]
        tx = self._router.functions.swapExactTokensForTokens(
            int(amount_in),
            int(max(0, amount_out_min)),
            path_cs,
            self.checksum(owner),
            int(time()) + deadline_secs_from_now,
        ).build_transaction(self._base_tx(owner))
        return self._finalize_gas(tx, "estimate_gas_swap")

    # ---------- send / receipts ----------
    @log_function
    def sign_and_send(self, tx: dict, account: LocalAccount) -> str:
        if DRY_RUN:
            logger.info(f"[DRY_RUN] tx not sent. TX={tx}")
            return "0x" + "0" * 64
        signed = account.sign_transaction(tx)
        tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        return tx_hash.hex()

    def wait_for_receipt(self, tx_hash: str, timeout: int = RECEIPT_TIMEOUT_SECS) -> TxReceipt:
        return self._rpc_call("wait_for_receipt", lambda: self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout))

    def received_amount(self, receipt: TxReceipt, token_address: str, recipient: str) -> Optional[int]:
        """Raw amount of ``token_address`` transferred to ``recipient`` according to the receipt logs."""
        token_cs = self.checksum(token_address)
        recipient_cs = self.checksum(recipient)
        total = None
        for log in receipt["logs"]:
            topics = log["topics"]
            if len(topics) < 3 or self.checksum(log["address"]) != token_cs:
                continue
            topic0 = topics[0].hex() if hasattr(topics[0], "hex") else str(topics[0])
            if topic0.removeprefix("0x") != TRANSFER_TOPIC.removeprefix("0x"):
                continue
            to_hex = topics[2].hex() if hasattr(topics[2], "hex") else str(topics[2])
            if self.checksum("0x" + to_hex[-40:]) != recipient_cs:
                continue
            data = log["data"]
            raw = int.from_bytes(data, "big") if isinstance(data, (bytes, bytearray)) else int(str(data), 16)
            total = (total or 0) + raw
        return total

