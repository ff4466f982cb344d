"""Process-local memoization tables.

Entries live for the life of the process unless a TTL is given. There is no
eviction by size and no locking: concurrent writers racing on one key leave
whichever value landed last, which is fine for best-effort caches.
"""

from __future__ import annotations

import time
from typing import Any, Generic, TypeVar

V = TypeVar("V")


class MemoCache(Generic[V]):
    """In-memory key/value cache with an optional per-entry time-to-live."""

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._index: dict[str, tuple[float, V]] = {}

    def get(self, key: str) -> V | None:
        record = self._index.get(key)
        if record is None:
            return None
        created_at, value = record
        if self.ttl_seconds is not None and (time.monotonic() - created_at) > self.ttl_seconds:
            self._index.pop(key, None)
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._index[key] = (time.monotonic(), value)

    def clear(self) -> None:
        self._index.clear()

    def __contains__(self, key: Any) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        """Count live entries; expired ones are dropped first."""
        for key in list(self._index):
            self.get(key)
        return len(self._index)
