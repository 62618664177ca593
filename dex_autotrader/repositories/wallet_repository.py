from __future__ import annotations

from dex_autotrader.models.activity import AIWallet
from dex_autotrader.repositories.db import SqliteRepository

class WalletRepository(SqliteRepository):
    """user identity -> AI execution wallet. Plain get/put/list store."""

    def _ensure_table(self):
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS ai_wallets (
                    user_identity    TEXT PRIMARY KEY,
                    address          TEXT NOT NULL,
                    derivation_index INTEGER NOT NULL,
                    created_at       INTEGER
                )
            """)
            c.commit()

    def get(self, user_identity: str) -> AIWallet | None:
        with self._conn() as c:
            r = c.execute("SELECT * FROM ai_wallets WHERE user_identity = ?", (user_identity.lower(),)).fetchone()
            return AIWallet(**dict(r)) if r else None

    def put(self, wallet: AIWallet) -> None:
        with self._conn() as c:
            c.execute(
                "INSERT OR REPLACE INTO ai_wallets (user_identity, address, derivation_index, created_at) VALUES (?,?,?,?)",
                (wallet.user_identity.lower(), wallet.address, wallet.derivation_index, wallet.created_at),
            )
            c.commit()

    def list(self) -> list[AIWallet]:
        with self._conn() as c:
            return [AIWallet(**dict(r)) for r in c.execute("SELECT * FROM ai_wallets ORDER BY created_at").fetchall()]
