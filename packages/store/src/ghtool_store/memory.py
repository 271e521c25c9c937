"""In-process store. Lives as long as the command does."""

from __future__ import annotations

import threading

from ghtool_store.base import BaseLogStore


class MemoryLogStore(BaseLogStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._entries[key] = bytes(value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
