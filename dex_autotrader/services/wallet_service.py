# services/wallet_service.py
from __future__ import annotations
import os
from time import sleep
from typing import Callable, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import keccak

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError
from dex_autotrader.models.activity import AIWallet
from dex_autotrader.repositories.wallet_repository import WalletRepository
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

AI_WALLET_MNEMONIC = os.getenv("AI_WALLET_MNEMONIC") or ""
AI_WALLET_BASE_PATH = os.getenv("AI_WALLET_BASE_PATH", "m/44'/60'/0'/0")
IDENTITY_RETRIES = int(os.getenv("IDENTITY_RETRIES", "3"))
IDENTITY_BACKOFF_SECS = float(os.getenv("IDENTITY_BACKOFF_SECS", "0.5"))

Account.enable_unaudited_hdwallet_features()


def derivation_index(user_identity: str) -> int:
    """First 4 bytes of keccak(lowercased identity), masked to a non-hardened BIP-32 index."""
    digest = keccak(text=user_identity.strip().lower())
    return int.from_bytes(digest[:4], "big") & 0x7FFFFFFF


class WalletService:
    """
    Resolves who signs.
      - resolve_identity(): bounded retry around an identity lookup (a connected
        wallet, a session header, ...). Raises NO_IDENTITY when exhausted.
      - get_or_create_ai_wallet(): per-user execution wallet derived from
        AI_WALLET_MNEMONIC at  <base_path>/<derivation_index(user)>.
        Same user -> same address on every process, every machine.
    """

    def __init__(
        self,
        wallet_repo: WalletRepository,
        mnemonic: str | None = None,
        base_path: str = AI_WALLET_BASE_PATH,
        retries: int = IDENTITY_RETRIES,
        backoff_secs: float = IDENTITY_BACKOFF_SECS,
    ) -> None:
        self.wallets = wallet_repo
        self._mnemonic = mnemonic if mnemonic is not None else AI_WALLET_MNEMONIC
        self.base_path = base_path.rstrip("/")
        self.retries = max(1, retries)
        self.backoff_secs = backoff_secs
        if not self._mnemonic:
            logger.warning("AI_WALLET_MNEMONIC not set; AI wallets cannot be derived.")

    # ---------- identity ----------
    @log_function
    def resolve_identity(self, lookup: Callable[[], Optional[str]]) -> str:
        for attempt in range(1, self.retries + 1):
            try:
                identity = lookup()
            except Exception as e:
                logger.warning(f"[identity] attempt {attempt}/{self.retries} failed: {e}")
                identity = None
            if identity:
                return identity.strip()
            if attempt < self.retries:
                sleep(self.backoff_secs)
        raise TradingError(ErrorKind.NO_IDENTITY, f"Could not resolve wallet identity after {self.retries} attempts")

    # ---------- derivation ----------
    def derivation_path(self, user_identity: str) -> str:
        return f"{self.base_path}/{derivation_index(user_identity)}"

    def derive_account(self, user_identity: str) -> LocalAccount:
        if not self._mnemonic:
            raise TradingError(ErrorKind.NO_IDENTITY, "AI_WALLET_MNEMONIC is not configured")
        return Account.from_mnemonic(self._mnemonic, account_path=self.derivation_path(user_identity))

    @log_function
    def get_or_create_ai_wallet(self, user_identity: str) -> AIWallet:
        existing = self.wallets.get(user_identity)
        if existing:
            logger.debug(f"Using existing AI wallet for {user_identity}: {existing.address}")
            return existing

        account = self.derive_account(user_identity)
        wallet = AIWallet(
            user_identity=user_identity.lower(),
            address=account.address,
            derivation_index=derivation_index(user_identity),
        )
        self.wallets.put(wallet)
        logger.info(f"Created AI wallet for {user_identity}: {wallet.address}")
        return wallet

    @log_function
    def register_ai_wallet(self, user_identity: str, address: str) -> AIWallet:
        """Bind an externally supplied execution wallet; it must match the derivation when a seed exists."""
        if self._mnemonic:
            expected = self.derive_account(user_identity).address
            if expected.lower() != address.lower():
                raise TradingError(ErrorKind.NO_IDENTITY, f"AI wallet {address} does not belong to {user_identity}")
        wallet = AIWallet(
            user_identity=user_identity.lower(),
            address=address,
            derivation_index=derivation_index(user_identity),
        )
        self.wallets.put(wallet)
        return wallet

    def signer_for(self, user_identity: str) -> LocalAccount:
        wallet = self.get_or_create_ai_wallet(user_identity)
        account = self.derive_account(user_identity)
        if account.address.lower() != wallet.address.lower():
            raise TradingError(ErrorKind.NO_IDENTITY, f"Stored AI wallet for {user_identity} does not match derivation")
        return account
