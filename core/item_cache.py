"""Short-lived in-process cache of resolved reports.

Updates:
    v0.1 - 2026-10-11 - Added TTL cache in front of the hybrid lookup resolver.
"""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

V = TypeVar("V")


class ItemMemoryCache(Generic[V]):
    """Maps item ids to values that expire *ttl_seconds* after being stored."""

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._entries: Dict[str, Tuple[V, float]] = {}
        self._lock = Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, item_id: str) -> Optional[V]:
        """Return the cached value, dropping it if it has expired."""
        with self._lock:
            entry = self._entries.get(item_id)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at > self._ttl:
                del self._entries[item_id]
                return None
            return value

    def set(self, item_id: str, value: V) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[item_id] = (value, self._clock())

    def set_all(self, values: Iterable[Tuple[str, V]]) -> None:
        if not self.enabled:
            return
        now = self._clock()
        with self._lock:
            for item_id, value in values:
                self._entries[item_id] = (value, now)

    def invalidate(self, item_id: str) -> None:
        with self._lock:
            self._entries.pop(item_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clean_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now - entry[1] > self._ttl]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
