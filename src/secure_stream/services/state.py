"""Process-wide playback state: sessions, rate windows, consumed nonces.

All mutable state the access protocol relies on is owned by a
``StreamStateStore``. Read-then-write sequences (check a session then write
it, check a rate window then bump it) must run inside ``store.lock(uid)`` so
that two requests for one account are serialized.

Two backends are provided. ``MemoryStreamStateStore`` keeps everything in the
current process. ``RedisStreamStateStore`` is required once the service runs
as more than one instance, since every instance must see the same sessions,
windows and nonces.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

import redis
from redis.exceptions import LockError

from secure_stream.core.errors import StateBusy
from secure_stream.core.settings import Settings
from secure_stream.models import PlaybackSession, RateWindow

logger = logging.getLogger(__name__)


class StreamStateStore(Protocol):
    """Narrow storage interface used by the registry, limiter and replay guard."""

    def lock(self, uid: str) -> AbstractContextManager[Any]: ...

    def get_session(self, uid: str) -> PlaybackSession | None: ...

    def put_session(
        self, uid: str, session: PlaybackSession, *, ttl_seconds: int | None = None
    ) -> None: ...

    def delete_session(self, uid: str) -> None: ...

    def remove_idle_sessions(self, now: int, idle_seconds: int) -> int: ...

    def get_window(self, uid: str) -> RateWindow | None: ...

    def put_window(self, uid: str, window: RateWindow, *, ttl_seconds: int) -> None: ...

    def remove_expired_windows(self, now: float, window_seconds: int) -> int: ...

    def consume_nonce(self, nonce: str, exp: int, now: int) -> bool: ...

    def purge_nonces(self, now: int) -> int: ...


class _KeyLock:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class MemoryStreamStateStore:
    """In-process store guarded by a table lock plus one lock per account."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._key_locks: dict[str, _KeyLock] = {}
        self._sessions: dict[str, PlaybackSession] = {}
        self._windows: dict[str, RateWindow] = {}
        self._nonces: dict[str, int] = {}

    @contextmanager
    def lock(self, uid: str) -> Iterator[None]:
        """Serialize work for ``uid``; the lock entry is dropped once unused."""
        with self._lock:
            entry = self._key_locks.get(uid)
            if entry is None:
                entry = self._key_locks[uid] = _KeyLock()
            entry.refs += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.refs -= 1
                if entry.refs == 0:
                    self._key_locks.pop(uid, None)

    def get_session(self, uid: str) -> PlaybackSession | None:
        with self._lock:
            return self._sessions.get(uid)

    def put_session(
        self, uid: str, session: PlaybackSession, *, ttl_seconds: int | None = None
    ) -> None:
        with self._lock:
            self._sessions[uid] = session

    def delete_session(self, uid: str) -> None:
        with self._lock:
            self._sessions.pop(uid, None)

    def remove_idle_sessions(self, now: int, idle_seconds: int) -> int:
        with self._lock:
            idle = [
                uid
                for uid, session in self._sessions.items()
                if now - session.updated_at > idle_seconds
            ]
            for uid in idle:
                del self._sessions[uid]
        return len(idle)

    def get_window(self, uid: str) -> RateWindow | None:
        with self._lock:
            window = self._windows.get(uid)
            if window is None:
                return None
            return RateWindow(window_start=window.window_start, count=window.count)

    def put_window(self, uid: str, window: RateWindow, *, ttl_seconds: int) -> None:
        with self._lock:
            self._windows[uid] = window

    def remove_expired_windows(self, now: float, window_seconds: int) -> int:
        with self._lock:
            expired = [
                uid
                for uid, window in self._windows.items()
                if now - window.window_start >= window_seconds
            ]
            for uid in expired:
                del self._windows[uid]
        return len(expired)

    def consume_nonce(self, nonce: str, exp: int, now: int) -> bool:
        """Record ``nonce`` as used; False if it was already consumed."""
        with self._lock:
            if nonce in self._nonces:
                return False
            self._nonces[nonce] = exp
            return True

    def purge_nonces(self, now: int) -> int:
        """Forget nonces whose tokens have expired and can no longer be redeemed."""
        with self._lock:
            expired = [nonce for nonce, exp in self._nonces.items() if exp < now]
            for nonce in expired:
                del self._nonces[nonce]
        return len(expired)

    @property
    def nonce_count(self) -> int:
        with self._lock:
            return len(self._nonces)

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)


class RedisStreamStateStore:
    """Redis-backed store shared by every service instance.

    Sessions and rate windows are JSON strings with key expiry, nonces are
    ``SET NX`` markers that expire shortly after their token does, and
    per-account serialization uses redis locks.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = "stream",
        lock_timeout: float = 5.0,
    ) -> None:
        self._redis = client
        self._prefix = prefix
        self._lock_timeout = lock_timeout

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisStreamStateStore:
        return cls(redis.from_url(url), **kwargs)  # type: ignore[no-untyped-call]

    def _key(self, kind: str, ident: str) -> str:
        return f"{self._prefix}:{kind}:{ident}"

    @contextmanager
    def lock(self, uid: str) -> Iterator[None]:
        """Hold the redis lock for ``uid``.

        Raises:
            StateBusy: If the lock is not acquired within ``lock_timeout``.
        """
        lock = self._redis.lock(
            self._key("lock", uid),
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )
        if not lock.acquire():
            logger.warning("Timed out waiting for state lock uid=%s", uid)
            raise StateBusy()
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # The lock outlived its timeout; the work under it has already run.
                logger.warning("State lock for uid=%s expired before release", uid)

    def _load(self, key: str) -> dict[str, Any] | None:
        raw = self._redis.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable state entry %s", key)
            self._redis.delete(key)
            return None
        return data if isinstance(data, dict) else None

    def get_session(self, uid: str) -> PlaybackSession | None:
        data = self._load(self._key("session", uid))
        return PlaybackSession.from_dict(data) if data is not None else None

    def put_session(
        self, uid: str, session: PlaybackSession, *, ttl_seconds: int | None = None
    ) -> None:
        self._redis.set(
            self._key("session", uid),
            json.dumps(session.to_dict(), separators=(",", ":")),
            ex=ttl_seconds,
        )

    def delete_session(self, uid: str) -> None:
        self._redis.delete(self._key("session", uid))

    def remove_idle_sessions(self, now: int, idle_seconds: int) -> int:
        removed = 0
        marker = self._key("session", "")
        for raw_key in self._redis.scan_iter(match=f"{marker}*"):
            key = raw_key.decode() if isinstance(raw_key, bytes) else str(raw_key)
            uid = key[len(marker):]
            with self.lock(uid):
                session = self.get_session(uid)
                if session is not None and now - session.updated_at > idle_seconds:
                    self.delete_session(uid)
                    removed += 1
        return removed

    def get_window(self, uid: str) -> RateWindow | None:
        data = self._load(self._key("rate", uid))
        return RateWindow.from_dict(data) if data is not None else None

    def put_window(self, uid: str, window: RateWindow, *, ttl_seconds: int) -> None:
        self._redis.set(
            self._key("rate", uid),
            json.dumps(window.to_dict(), separators=(",", ":")),
            ex=max(1, int(ttl_seconds)),
        )

    def remove_expired_windows(self, now: float, window_seconds: int) -> int:
        # Windows carry their own key expiry.
        return 0

    def consume_nonce(self, nonce: str, exp: int, now: int) -> bool:
        ttl = max(1, exp - now + 1)
        return bool(self._redis.set(self._key("nonce", nonce), "1", nx=True, ex=ttl))

    def purge_nonces(self, now: int) -> int:
        # Nonce markers expire on their own once the token is past ``exp``.
        return 0


def create_state_store(config: Settings) -> StreamStateStore:
    """Return the state store selected by ``STREAM_STATE_BACKEND``."""
    if config.state_backend == "redis":
        logger.info("Using redis state store")
        return RedisStreamStateStore.from_url(config.redis_url)
    return MemoryStreamStateStore()
