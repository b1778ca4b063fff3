"""
NewsGuard - Database
====================

SQLite store backing the durable tier of the moderation result cache.

DESIGN:
    One connection per manager, guarded by a threading.Lock so the
    synchronous sqlite3 calls never interleave. WAL mode keeps reads
    cheap while a write is in flight. The schema is applied every time
    a connection opens, so a fresh file, a restart or a reconnect needs
    no migration step.

    Rows are namespaced: classifier results and fused verdicts share one
    table but never collide.
"""

import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional, Tuple, Union

from newsguard.core.config import DEFAULT_CACHE_DB
from newsguard.core.logger import logger


# =============================================================================
# Schema
# =============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS moderation_cache (
    namespace TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    payload TEXT NOT NULL,
    expires_at REAL NOT NULL,
    created_at REAL NOT NULL,
    PRIMARY KEY (namespace, fingerprint)
);
CREATE INDEX IF NOT EXISTS idx_moderation_cache_expiry ON moderation_cache(expires_at);
"""

PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA temp_store=MEMORY",
)

MEMORY_PATH = ":memory:"


# =============================================================================
# Database Manager
# =============================================================================

class DatabaseManager:
    """
    Thread-safe wrapper around one SQLite connection.

    Pass ":memory:" as the path for a throwaway store.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_CACHE_DB) -> None:
        """
        Open the store, creating the file and its folder when missing.

        Raises:
            sqlite3.Error: If the file cannot be opened.
        """
        self.path = str(path)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        if self.path != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        with self._lock:
            self._open()

        logger.tree("Cache Store Opened", [
            ("Path", self.path),
            ("Journal", "WAL"),
        ], emoji="🗄️")

    # =========================================================================
    # Connection
    # =========================================================================

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.path, check_same_thread=False, timeout=30.0)
            for pragma in PRAGMAS:
                conn.execute(pragma)
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            logger.error("Cache Store Open Failed", [
                ("Path", self.path),
                ("Error", str(e)[:100]),
            ])
            raise
        conn.row_factory = sqlite3.Row
        self._conn = conn
        return conn

    def _connection(self) -> sqlite3.Connection:
        """Current connection, reopened if it was closed."""
        if self._conn is None:
            return self._open()
        return self._conn

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Run one statement and commit."""
        with self._lock:
            conn = self._connection()
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._connection().execute(query, params).fetchone()

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Cache Store Closed", [("Path", self.path)])

    # =========================================================================
    # Moderation Cache Rows
    # =========================================================================

    def get_cache_entry(self, namespace: str, fingerprint: str) -> Optional[Tuple[str, float]]:
        """
        Fetch a cached payload.

        Returns:
            (payload, expires_at) or None. Expiry is not checked here.
        """
        row = self.fetchone(
            "SELECT payload, expires_at FROM moderation_cache WHERE namespace = ? AND fingerprint = ?",
            (namespace, fingerprint),
        )
        if row is None:
            return None
        return row["payload"], row["expires_at"]

    def set_cache_entry(self, namespace: str, fingerprint: str, payload: str, expires_at: float) -> None:
        """Insert or replace a cached payload (last write wins)."""
        self.execute(
            "INSERT OR REPLACE INTO moderation_cache "
            "(namespace, fingerprint, payload, expires_at, created_at) VALUES (?, ?, ?, ?, ?)",
            (namespace, fingerprint, payload, expires_at, time.time()),
        )

    def delete_cache_entry(self, namespace: str, fingerprint: str) -> bool:
        cursor = self.execute(
            "DELETE FROM moderation_cache WHERE namespace = ? AND fingerprint = ?",
            (namespace, fingerprint),
        )
        return cursor.rowcount > 0

    def purge_expired_cache(self, now: Optional[float] = None) -> int:
        """
        Delete every expired row across all namespaces.

        Returns:
            Number of rows removed.
        """
        cursor = self.execute(
            "DELETE FROM moderation_cache WHERE expires_at <= ?",
            (time.time() if now is None else now,),
        )
        return cursor.rowcount

    def count_cache_entries(self, namespace: Optional[str] = None) -> int:
        if namespace is None:
            row = self.fetchone("SELECT COUNT(*) AS n FROM moderation_cache")
        else:
            row = self.fetchone("SELECT COUNT(*) AS n FROM moderation_cache WHERE namespace = ?", (namespace,))
        return int(row["n"]) if row else 0


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["DatabaseManager"]
