# repositories/strategy_repository.py
from __future__ import annotations
from typing import Iterable, Optional

from dex_autotrader.enums.trading import RiskLevel
from dex_autotrader.models.strategy import Strategy
from dex_autotrader.repositories.db import SqliteRepository
from dex_autotrader.utils.log_config import log_function

class StrategyRepository(SqliteRepository):
    """Strategy rows. List order (ascending id) is the tie-break order used by the registry."""

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
            CREATE TABLE IF NOT EXISTS strategies (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                name             TEXT NOT NULL UNIQUE,
                risk_level       TEXT NOT NULL DEFAULT 'medium',
                enabled          INTEGER NOT NULL DEFAULT 0,
                has_limit_orders INTEGER NOT NULL DEFAULT 0,
                is_memecoin      INTEGER NOT NULL DEFAULT 0
            )
            """)
            c.commit()

    @staticmethod
    def _to_model(row) -> Strategy:
        return Strategy(
            id=row["id"],
            name=row["name"],
            risk_level=RiskLevel(row["risk_level"]),
            enabled=bool(row["enabled"]),
            has_limit_orders=bool(row["has_limit_orders"]),
            is_memecoin=bool(row["is_memecoin"]),
        )

    @log_function
    def seed(self, seeds: Iterable[dict]) -> None:
        """Insert configured strategies that are not there yet; existing rows keep their flags."""
        with self._conn() as c:
            for s in seeds:
                c.execute("""
                    INSERT OR IGNORE INTO strategies (name, risk_level, enabled, has_limit_orders, is_memecoin)
                    VALUES (?, ?, 0, ?, ?)
                """, (
                    s["name"],
                    RiskLevel(s.get("risk_level", "medium")).value,
                    int(bool(s.get("has_limit_orders", False))),
                    int(bool(s.get("is_memecoin", False))),
                ))
            c.commit()

    def get(self, strategy_id: int) -> Optional[Strategy]:
        with self._conn() as c:
            row = c.execute("SELECT * FROM strategies WHERE id = ?", (strategy_id,)).fetchone()
            return self._to_model(row) if row else None

    def list_all(self) -> list[Strategy]:
        with self._conn() as c:
            rows = c.execute("SELECT * FROM strategies ORDER BY id ASC").fetchall()
            return [self._to_model(r) for r in rows]

    @log_function
    def enable_exclusive(self, strategy_id: int) -> None:
        """Enable one strategy and disable every other in a single statement."""
        with self._conn() as c:
            c.execute("UPDATE strategies SET enabled = CASE WHEN id = ? THEN 1 ELSE 0 END", (strategy_id,))
            c.commit()

    @log_function
    def set_enabled(self, strategy_id: int, enabled: bool) -> None:
        with self._conn() as c:
            c.execute("UPDATE strategies SET enabled = ? WHERE id = ?", (int(enabled), strategy_id))
            c.commit()

    @log_function
    def disable_many(self, strategy_ids: Iterable[int]) -> None:
        ids = list(strategy_ids)
        if not ids:
            return
        with self._conn() as c:
            c.executemany("UPDATE strategies SET enabled = 0 WHERE id = ?", [(i,) for i in ids])
            c.commit()
