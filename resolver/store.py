"""SQLite-backed string key/value store used by the result cache."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteStore:
    """String-keyed get/set/delete with single-key atomic writes.

    Every write runs in its own transaction, so a partially written value
    is never visible to readers.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connect(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self):
        """Create the key/value table."""
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
        logger.info("Store initialized at %s", self.db_path)

    def get(self, key: str) -> str | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str):
        with self.connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) "
                "VALUES (?, ?, datetime('now'))",
                (key, value),
            )

    def delete(self, key: str):
        with self.connect() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def keys(self, prefix: str = "") -> list[str]:
        """All keys starting with ``prefix`` (literal match, no wildcards)."""
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
            return [r["key"] for r in rows]

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns the count."""
        with self.connect() as conn:
            cur = conn.execute(
                "DELETE FROM kv_store WHERE substr(key, 1, ?) = ?",
                (len(prefix), prefix),
            )
            return cur.rowcount
