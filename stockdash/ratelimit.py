"""Fixed-window in-memory rate limiter for the stock endpoints."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

UNKNOWN_CLIENT = "unknown"
FORWARDED_FOR_HEADER = "x-forwarded-for"


@dataclass
class RateWindow:
    count: int
    reset_at: float


def client_id_from_headers(headers: Mapping[str, str]) -> str:
    """Return the left-most X-Forwarded-For address, or "unknown".

    Proxies append hops to the right, so only the first entry identifies the
    caller. `headers` must be case-insensitive (Starlette Headers) or lower-case.
    """
    raw = headers.get(FORWARDED_FOR_HEADER)
    if not raw:
        return UNKNOWN_CLIENT
    first = raw.split(",", 1)[0].strip()
    return first or UNKNOWN_CLIENT


class FixedWindowRateLimiter:
    """Per (client, route) request counter with fixed windows.

    The first request for a key opens a window of `window_s` seconds. Up to
    `max_requests` requests are accepted inside it; the rest are rejected
    until the window has passed, at which point the next request opens a new one.
    The key space is bounded: a new key at capacity evicts the oldest key.
    """

    def __init__(
        self,
        max_requests: int = 30,
        window_s: float = 60.0,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max = max_requests
        self._window = window_s
        self._max_keys = max(1, max_keys)
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(client_id: str, route: str) -> str:
        return f"{client_id}:{route}"

    def check_and_consume(self, client_id: str, route: str) -> bool:
        """Count one request for (client_id, route). Returns False if it must be rejected."""
        key = self.key_for(client_id, route)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                if window is None and len(self._windows) >= self._max_keys:
                    self._windows.pop(next(iter(self._windows)))
                self._windows[key] = RateWindow(count=1, reset_at=now + self._window)
                return True
            if window.count >= self._max:
                return False
            window.count += 1
            return True

    def retry_after(self, client_id: str, route: str) -> int:
        """Whole seconds until the current window for (client_id, route) resets."""
        with self._lock:
            window = self._windows.get(self.key_for(client_id, route))
            if window is None:
                return 0
            return max(0, math.ceil(window.reset_at - self._clock()))

    def sweep(self) -> int:
        """Remove windows that have already reset. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, w in self._windows.items() if now > w.reset_at]
            for k in stale:
                del self._windows[k]
            return len(stale)

    @property
    def limit_info(self) -> dict:
        return {"max_requests": self._max, "window_seconds": self._window}

    def __len__(self) -> int:
        return len(self._windows)
