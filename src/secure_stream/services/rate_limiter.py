"""Fixed-window throttling for token issuance."""

from __future__ import annotations

from secure_stream.core.clock import Clock, system_clock
from secure_stream.models import RateWindow
from secure_stream.services.state import StreamStateStore


class FixedWindowRateLimiter:
    """Per-account fixed-window counter.

    Each account's window starts at its first request, so windows are not
    aligned across accounts and a burst of up to ``2 * limit`` can straddle one
    account's window edge.

    ``allow`` reads then writes the window; callers issuing tokens hold
    ``store.lock(uid)`` around it.
    """

    def __init__(
        self,
        store: StreamStateStore,
        *,
        limit: int = 12,
        window_seconds: int = 60,
        clock: Clock = system_clock,
    ) -> None:
        self._store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    def allow(self, uid: str) -> bool:
        """Count one request for ``uid`` and report whether it may proceed."""
        now = self._clock()
        window = self._store.get_window(uid)
        if window is None or now - window.window_start >= self.window_seconds:
            self._store.put_window(
                uid, RateWindow(window_start=now, count=1), ttl_seconds=self.window_seconds
            )
            return True
        if window.count >= self.limit:
            return False
        window.count += 1
        remaining = self.window_seconds - (now - window.window_start)
        self._store.put_window(uid, window, ttl_seconds=int(remaining) + 1)
        return True

    def remove_expired(self) -> int:
        """Drop windows that have fully elapsed."""
        return self._store.remove_expired_windows(self._clock(), self.window_seconds)
