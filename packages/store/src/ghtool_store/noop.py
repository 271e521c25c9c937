"""No-op store, used when caching is turned off (cache: none).

Using a NoOpLogStore rather than None keeps the CLI free of conditionals
around the store's lifecycle.
"""

from __future__ import annotations

from ghtool_store.base import BaseLogStore


class NoOpLogStore(BaseLogStore):
    """Remembers nothing. Every fetch goes to the network."""

    def get(self, key: str) -> bytes | None:
        return None

    def put(self, key: str, value: bytes) -> None:
        pass  # intentional no-op
