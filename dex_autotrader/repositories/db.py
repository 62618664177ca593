import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

def resolve_db_path(db_path: str | None = None) -> str:
    if db_path:
        return str(Path(db_path).expanduser().resolve())
    env_path = os.getenv("DB_PATH")
    if env_path:
        return str(Path(env_path).expanduser().resolve())
    root = Path(__file__).resolve().parents[2]
    default = root / "data" / "autotrader.db"
    default.parent.mkdir(parents=True, exist_ok=True)
    return str(default)


class SqliteRepository:
    """Short-lived connection per call; subclasses create their tables in ``_ensure_table``."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = resolve_db_path(db_path)
        self._ensure_table()

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        raise NotImplementedError
