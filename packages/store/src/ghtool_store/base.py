"""Abstract log cache interface.

The log fetcher depends on BaseLogStore, not on a concrete backend, so the
CLI can pick SQLite, in-memory or no caching from configuration alone.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseLogStore(ABC):
    """Keyed byte store for downloaded job logs.

    Entries are immutable: a key is written once and never invalidated.
    Implementations must be safe to call from several threads at once, and
    a reader must never observe a partially written value.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key is unknown."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store `value` under `key`, replacing any previous value atomically."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
