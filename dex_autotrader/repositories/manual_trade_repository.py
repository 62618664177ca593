import json
import time

from dex_autotrader.models.activity import ManualTradeRecord
from dex_autotrader.repositories.db import SqliteRepository
from dex_autotrader.utils.log_config import log_function

class ManualTradeRepository(SqliteRepository):
    """Audit trail of operator-confirmed executions (POST /trading/manual-trade)."""

    def _ensure_table(self):
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS manual_trades(
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id    INTEGER NOT NULL,
                    trade_details TEXT NOT NULL,
                    confidence    REAL,
                    created_at    INTEGER
                )
            """)
            conn.commit()

    @log_function
    def record(self, session_id: int, trade_details: dict, confidence: float) -> ManualTradeRecord:
        created_at = int(time.time())
        with self._conn() as conn:
            cur = conn.execute("""
                INSERT INTO manual_trades (session_id, trade_details, confidence, created_at)
                VALUES (?, ?, ?, ?)
            """, (session_id, json.dumps(trade_details, default=str), float(confidence), created_at))
            conn.commit()
            return ManualTradeRecord(
                id=int(cur.lastrowid),
                session_id=session_id,
                trade_details=trade_details,
                confidence=float(confidence),
                created_at=created_at,
            )

    @log_function
    def list_for_session(self, session_id: int, limit: int = 50) -> list[ManualTradeRecord]:
        with self._conn() as conn:
            rows = conn.execute("""
                SELECT id, session_id, trade_details, confidence, created_at
                FROM manual_trades
                WHERE session_id = ?
                ORDER BY id DESC
                LIMIT ?
            """, (session_id, limit)).fetchall()
            return [
                ManualTradeRecord(
                    id=r["id"],
                    session_id=r["session_id"],
                    trade_details=json.loads(r["trade_details"]),
                    confidence=r["confidence"],
                    created_at=r["created_at"],
                )
                for r in rows
            ]
