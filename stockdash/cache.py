# stockdash/cache.py
# Purpose: In-memory TTL cache shared by all stock endpoints.
# Why: Reduce calls to Finnhub/Yahoo and stay inside their quotas.
# Pitfalls: Not persistent; per-process only (each worker has its own copy).

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

MAX_CACHE_ENTRIES = 1000


class TTLCache:
    """Key -> value store with per-entry expiry and FIFO eviction.

    Expiry is checked lazily on `get`; `sweep()` only frees memory for keys that
    are never read again. Eviction order is insertion order: overwriting a key
    replaces its value and expiry but keeps its original slot.
    """

    def __init__(
        self,
        max_entries: int = MAX_CACHE_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max = max(1, max_entries)
        self._clock = clock
        # key -> (expiry, value), dict order == insertion order
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max

    def get(self, key: str) -> Any:
        """Return cached value if still valid, else None."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expiry, value = entry
            if self._clock() > expiry:
                # expired
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_s: float) -> None:
        """Store value with expiry, evicting the oldest key if a new key would overflow."""
        with self._lock:
            if key not in self._store and len(self._store) >= self._max:
                self._store.pop(next(iter(self._store)))
            self._store[key] = (self._clock() + ttl_s, value)

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (expiry, _) in self._store.items() if now > expiry]
            for k in expired:
                del self._store[k]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
