# repositories/session_repository.py
from __future__ import annotations
import time
from decimal import Decimal
from typing import Optional

from dex_autotrader.models.trading_session import TradingSession
from dex_autotrader.repositories.db import SqliteRepository
from dex_autotrader.utils.log_config import log_function

class SessionRepository(SqliteRepository):
    """
    Trading sessions, one row per (user, allocation lifetime).
    - Rows are never deleted; stop just clears is_active.
    - A partial unique index keeps at most one active row per user.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
            CREATE TABLE IF NOT EXISTS trading_sessions (
                id                INTEGER PRIMARY KEY AUTOINCREMENT,
                user_identity     TEXT NOT NULL,
                ai_wallet_address TEXT,
                allocated_amount  TEXT NOT NULL DEFAULT '0',
                is_active         INTEGER NOT NULL DEFAULT 0,
                created_at        INTEGER,
                updated_at        INTEGER
            )
            """)
            c.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_sessions_one_active
                ON trading_sessions(user_identity) WHERE is_active = 1
            """)
            c.commit()

    @staticmethod
    def _to_model(row) -> TradingSession:
        return TradingSession(
            session_id=row["id"],
            user_identity=row["user_identity"],
            ai_wallet_address=row["ai_wallet_address"],
            allocated_amount=Decimal(row["allocated_amount"]),
            is_active=bool(row["is_active"]),
            created_at=row["created_at"] or 0,
            updated_at=row["updated_at"] or 0,
        )

    @log_function
    def create(self, user_identity: str, ai_wallet_address: str | None,
               allocated_amount: Decimal, is_active: bool = True) -> TradingSession:
        now = int(time.time())
        with self._conn() as c:
            cur = c.execute("""
                INSERT INTO trading_sessions (
                    user_identity, ai_wallet_address, allocated_amount, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, (user_identity, ai_wallet_address, str(allocated_amount), int(is_active), now, now))
            c.commit()
            session_id = int(cur.lastrowid)
        return self.get(session_id)

    def get(self, session_id: int) -> Optional[TradingSession]:
        with self._conn() as c:
            row = c.execute("SELECT * FROM trading_sessions WHERE id = ?", (session_id,)).fetchone()
            return self._to_model(row) if row else None

    def get_active_for_user(self, user_identity: str) -> Optional[TradingSession]:
        with self._conn() as c:
            row = c.execute("""
                SELECT * FROM trading_sessions
                 WHERE user_identity = ? AND is_active = 1
                 LIMIT 1
            """, (user_identity,)).fetchone()
            return self._to_model(row) if row else None

    def list_for_user(self, user_identity: str) -> list[TradingSession]:
        """Active session first, then most recent."""
        with self._conn() as c:
            rows = c.execute("""
                SELECT * FROM trading_sessions
                 WHERE user_identity = ?
                 ORDER BY is_active DESC, id DESC
            """, (user_identity,)).fetchall()
            return [self._to_model(r) for r in rows]

    def list_active(self) -> list[TradingSession]:
        with self._conn() as c:
            rows = c.execute("SELECT * FROM trading_sessions WHERE is_active = 1 ORDER BY id").fetchall()
            return [self._to_model(r) for r in rows]

    @log_function
    def reactivate(self, session_id: int, ai_wallet_address: str | None, allocated_amount: Decimal) -> TradingSession:
        with self._conn() as c:
            c.execute("""
                UPDATE trading_sessions
                   SET is_active = 1, ai_wallet_address = ?, allocated_amount = ?, updated_at = ?
                 WHERE id = ?
            """, (ai_wallet_address, str(allocated_amount), int(time.time()), session_id))
            c.commit()
        return self.get(session_id)

    @log_function
    def deactivate(self, session_id: int) -> None:
        with self._conn() as c:
            c.execute("UPDATE trading_sessions SET is_active = 0, updated_at = ? WHERE id = ?",
                      (int(time.time()), session_id))
            c.commit()

    @log_function
    def set_allocation(self, session_id: int, allocated_amount: Decimal) -> None:
        with self._conn() as c:
            c.execute("UPDATE trading_sessions SET allocated_amount = ?, updated_at = ? WHERE id = ?",
                      (str(allocated_amount), int(time.time()), session_id))
            c.commit()
