"""One-active-stream-per-account session registry."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Any

from secure_stream.core.clock import Clock, system_clock
from secure_stream.core.errors import ConcurrentSessionConflict
from secure_stream.models import Fingerprint, PlaybackSession
from secure_stream.services.state import StreamStateStore

logger = logging.getLogger(__name__)


def may_acquire(
    stored: PlaybackSession | None,
    fingerprint: Fingerprint,
    *,
    now: int,
    idle_seconds: int,
) -> bool:
    """Decide whether a client may take the account's playback slot.

    The same device is always allowed to continue. A different device is
    turned away only while the stored session is still active; an idle
    session counts as abandoned even before the sweeper removes it.
    """
    if stored is None or stored.fingerprint == fingerprint:
        return True
    return not stored.is_active(now, idle_seconds)


class SessionRegistry:
    """Registry holding at most one playback session per account."""

    def __init__(
        self,
        store: StreamStateStore,
        *,
        idle_seconds: int = 120,
        clock: Clock = system_clock,
    ) -> None:
        self._store = store
        self.idle_seconds = idle_seconds
        self._clock = clock

    def lock(self, uid: str) -> AbstractContextManager[Any]:
        """Serialize a check-then-write sequence for ``uid``."""
        return self._store.lock(uid)

    def get(self, uid: str) -> PlaybackSession | None:
        return self._store.get_session(uid)

    def put(self, uid: str, session: PlaybackSession) -> None:
        """Store ``session`` for ``uid``, replacing whatever was there."""
        # Twice the idle window keeps a margin for the sweeper on redis.
        self._store.put_session(uid, session, ttl_seconds=self.idle_seconds * 2)

    def delete(self, uid: str) -> None:
        self._store.delete_session(uid)

    def sweep_idle(self, threshold_seconds: int | None = None) -> int:
        """Remove every session silent for longer than the threshold."""
        threshold = self.idle_seconds if threshold_seconds is None else threshold_seconds
        return self._store.remove_idle_sessions(int(self._clock()), threshold)

    def ensure_available(self, uid: str, fingerprint: Fingerprint) -> None:
        """Apply the concurrency policy against the stored session for ``uid``.

        Raises:
            ConcurrentSessionConflict: If another device holds an active session.
        """
        stored = self.get(uid)
        if not may_acquire(
            stored, fingerprint, now=int(self._clock()), idle_seconds=self.idle_seconds
        ):
            logger.info("Concurrent stream rejected for uid=%s", uid)
            raise ConcurrentSessionConflict()

    def touch(self, uid: str, sid: str, fingerprint: Fingerprint) -> bool:
        """Refresh ``updated_at`` when the stored session matches exactly."""
        with self.lock(uid):
            stored = self.get(uid)
            if stored is None or not stored.matches(sid, fingerprint):
                return False
            self.put(uid, stored.touched(int(self._clock())))
            return True

    def release(self, uid: str, sid: str, fingerprint: Fingerprint) -> bool:
        """Delete the stored session when it matches exactly; otherwise do nothing."""
        with self.lock(uid):
            stored = self.get(uid)
            if stored is None or not stored.matches(sid, fingerprint):
                return False
            self.delete(uid)
            return True
