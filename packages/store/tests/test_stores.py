"""Tests for ghtool-store implementations."""

from __future__ import annotations

import sqlite3
import threading

import pytest

from ghtool_store.memory import MemoryLogStore
from ghtool_store.noop import NoOpLogStore
from ghtool_store.sqlite import SQLiteLogStore

KEY = "job-log:owner/repo:42:failure"
LOG = "FAIL src/a.test.ts\n  ● fails\n".encode("utf-8")


# ---------------------------------------------------------------------------
# NoOpLogStore
# ---------------------------------------------------------------------------


class TestNoOpLogStore:
    def test_put_does_not_raise(self):
        NoOpLogStore().put(KEY, LOG)  # must not raise

    def test_get_always_misses(self):
        store = NoOpLogStore()
        store.put(KEY, LOG)
        assert store.get(KEY) is None

    def test_close_is_safe(self):
        NoOpLogStore().close()


# ---------------------------------------------------------------------------
# MemoryLogStore
# ---------------------------------------------------------------------------


class TestMemoryLogStore:
    def test_put_and_get(self):
        store = MemoryLogStore()
        store.put(KEY, LOG)
        assert store.get(KEY) == LOG
        assert len(store) == 1

    def test_unknown_key(self):
        assert MemoryLogStore().get("nope") is None

    def test_stored_copy_is_independent(self):
        store = MemoryLogStore()
        data = bytearray(b"abc")
        store.put(KEY, data)
        data[0] = ord("x")
        assert store.get(KEY) == b"abc"


# ---------------------------------------------------------------------------
# SQLiteLogStore
# ---------------------------------------------------------------------------


class TestSQLiteLogStore:
    def test_put_and_get(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")
        store.put(KEY, LOG)
        assert store.get(KEY) == LOG
        store.close()

    def test_unknown_key(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")
        assert store.get("missing") is None
        store.close()

    def test_put_replaces_existing_value(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")
        store.put(KEY, b"old")
        store.put(KEY, b"new")
        assert store.get(KEY) == b"new"
        store.close()

    def test_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "cache" / "ghtool" / "logs.db"
        store = SQLiteLogStore(db_path=db_path)
        store.put(KEY, LOG)
        store.close()
        assert db_path.exists()

    def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "logs.db")
        first = SQLiteLogStore(db_path=db_path)
        first.put(KEY, LOG)
        first.close()

        second = SQLiteLogStore(db_path=db_path)
        assert second.get(KEY) == LOG
        second.close()

    def test_binary_safe(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")
        data = bytes(range(256))
        store.put(KEY, data)
        assert store.get(KEY) == data
        store.close()

    def test_records_stored_at(self, tmp_path):
        db_path = tmp_path / "logs.db"
        store = SQLiteLogStore(db_path=db_path)
        store.put(KEY, LOG)
        store.close()

        conn = sqlite3.connect(str(db_path))
        (stored_at,) = conn.execute("SELECT stored_at FROM log_cache WHERE key=?", (KEY,)).fetchone()
        conn.close()
        assert stored_at.endswith("+00:00")

    def test_concurrent_writers(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")

        def writer(n):
            for i in range(20):
                store.put(f"job-log:o/r:{n}-{i}:failure", f"{n}-{i}".encode())

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert store.get("job-log:o/r:3-19:failure") == b"3-19"
        store.close()

    def test_failed_write_leaves_no_partial_entry(self, tmp_path):
        store = SQLiteLogStore(db_path=tmp_path / "logs.db")
        with pytest.raises(sqlite3.Error):
            # None violates NOT NULL; the transaction is rolled back.
            store.put(KEY, None)
        assert store.get(KEY) is None
        store.close()
