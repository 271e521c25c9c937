"""SQLiteLogStore: the default persistent log cache.

Why SQLite:
- Ships with Python, no extra dependency.
- Each put is a single transaction, so a crash mid-write leaves either the
  old state or the new entry, never a truncated log.
- A job's log is immutable once its run completed, so entries are kept
  forever and looked up by primary key only.

Schema:
  log_cache: one row per cached job log, keyed by
              job-log:<owner/name>:<job id>:<conclusion>.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from ghtool_store.base import BaseLogStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS log_cache (
    key        TEXT PRIMARY KEY,
    value      BLOB NOT NULL,
    stored_at  TEXT
);
"""


class SQLiteLogStore(BaseLogStore):
    """Stores job logs in a local SQLite database file.

    The file path defaults to $XDG_CACHE_HOME/ghtool/logs.db. Configure via
    .ghtool.yml: `cache_path: /path/to/logs.db`. The parent directory is
    created if needed.
    """

    def __init__(self, db_path: str | Path):
        path = Path(db_path)
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        # Log downloads run on worker threads; the lock serializes them onto one connection.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.debug("Using log cache at %s", path)

    def get(self, key: str) -> bytes | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM log_cache WHERE key=?", (key,)).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: str, value: bytes) -> None:
        stored_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            # The connection context manager commits on success and rolls back on error.
            with self._conn:
                self._conn.execute(
                    "INSERT OR REPLACE INTO log_cache (key, value, stored_at) VALUES (?, ?, ?)",
                    (key, value, stored_at),
                )

    def close(self) -> None:
        with self._lock:
            self._conn.close()
