"""
TokenRepository (SQLite).
Reference data for the tradable token set: symbol, address, decimals, and the
last price/liquidity seen on DexScreener.
"""

from __future__ import annotations
from typing import Iterable, Optional

from dex_autotrader.models.token import Token
from dex_autotrader.repositories.db import SqliteRepository
from dex_autotrader.utils.log_config import log_function

class TokenRepository(SqliteRepository):

    def _ensure_table(self):
        with self._conn() as conn:
            conn.execute('''CREATE TABLE IF NOT EXISTS tokens (
                id            INTEGER PRIMARY KEY,
                symbol        TEXT NOT NULL UNIQUE,
                address       TEXT NOT NULL,
                decimals      INTEGER NOT NULL DEFAULT 18,
                name          TEXT DEFAULT '',
                price         REAL DEFAULT 0.0,
                liquidity     REAL DEFAULT 0.0,
                volume        REAL DEFAULT 0.0,
                pair_address  TEXT DEFAULT '',
                updated_at    INTEGER DEFAULT 0
            )''')
            conn.commit()

    @log_function
    def seed(self, tokens: Iterable[dict]) -> None:
        """Insert configured tokens; address and decimals follow the config, market fields are kept."""
        with self._conn() as conn:
            for t in tokens:
                conn.execute('''
                    INSERT INTO tokens (id, symbol, address, decimals, name)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        symbol = excluded.symbol,
                        address = excluded.address,
                        decimals = excluded.decimals
                ''', (int(t["id"]), t["symbol"].upper(), t["address"], int(t.get("decimals", 18)), t.get("name", "")))
            conn.commit()

    @log_function
    def save(self, token: Token) -> None:
        with self._conn() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO tokens (
                    id, symbol, address, decimals, name, price, liquidity, volume, pair_address, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                token.id, token.symbol.upper(), token.address, token.decimals, token.name,
                token.price, token.liquidity, token.volume, token.pair_address, token.updated_at,
            ))
            conn.commit()

    def list_all(self) -> list[Token]:
        with self._conn() as conn:
            return [Token(**dict(r)) for r in conn.execute("SELECT * FROM tokens ORDER BY id").fetchall()]

    def get_by_symbol(self, symbol: str) -> Optional[Token]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tokens WHERE symbol = ?", (symbol.upper(),)).fetchone()
            return Token(**dict(row)) if row else None

    def get_by_address(self, address: str) -> Optional[Token]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tokens WHERE LOWER(address) = ?", (address.lower(),)).fetchone()
            return Token(**dict(row)) if row else None
