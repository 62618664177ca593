# repositories/trade_repository.py
from __future__ import annotations
import threading
from typing import Optional

from dex_autotrader.models.trade import Trade
from dex_autotrader.repositories.db import SqliteRepository
from dex_autotrader.utils.log_config import log_function

class TradeRepository(SqliteRepository):
    """
    Confirmed swaps. Appends are serialized so row ids follow confirmation order.
    list_recent() is cached until the next append or an explicit invalidate().
    """

    def __init__(self, db_path: str | None = None) -> None:
        self._append_lock = threading.Lock()
        self._cache: Optional[list[Trade]] = None
        super().__init__(db_path)

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
            CREATE TABLE IF NOT EXISTS trades (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                token_a_id  INTEGER NOT NULL,
                token_b_id  INTEGER NOT NULL,
                amount_a    TEXT NOT NULL,
                amount_b    TEXT NOT NULL,
                is_ai       INTEGER NOT NULL DEFAULT 1,
                tx_hash     TEXT,
                session_id  INTEGER,
                created_at  INTEGER
            )
            """)
            c.commit()

    @staticmethod
    def _to_model(row) -> Trade:
        return Trade(
            id=row["id"],
            token_a_id=row["token_a_id"],
            token_b_id=row["token_b_id"],
            amount_a=row["amount_a"],
            amount_b=row["amount_b"],
            is_ai=bool(row["is_ai"]),
            tx_hash=row["tx_hash"],
            session_id=row["session_id"],
            created_at=row["created_at"] or 0,
        )

    @log_function
    def append(self, trade: Trade) -> Trade:
        with self._append_lock:
            with self._conn() as c:
                cur = c.execute("""
                    INSERT INTO trades (token_a_id, token_b_id, amount_a, amount_b, is_ai, tx_hash, session_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    trade.token_a_id, trade.token_b_id, trade.amount_a, trade.amount_b,
                    int(trade.is_ai), trade.tx_hash, trade.session_id, trade.created_at,
                ))
                c.commit()
                saved = trade.model_copy(update={"id": int(cur.lastrowid)})
            self._cache = None
        return saved

    def invalidate(self) -> None:
        self._cache = None

    def list_recent(self, limit: int = 200) -> list[Trade]:
        cached = self._cache
        if cached is not None and len(cached) >= limit:
            return cached[:limit]
        with self._conn() as c:
            rows = c.execute("SELECT * FROM trades ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
            trades = [self._to_model(r) for r in rows]
        self._cache = trades
        return trades

    def list_in_order(self) -> list[Trade]:
        with self._conn() as c:
            rows = c.execute("SELECT * FROM trades ORDER BY id ASC").fetchall()
            return [self._to_model(r) for r in rows]

    def count(self) -> int:
        with self._conn() as c:
            return int(c.execute("SELECT COUNT(*) FROM trades").fetchone()[0])
