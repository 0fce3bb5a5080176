"""Single-use nonce tracking for playback tokens."""

from __future__ import annotations

from secure_stream.core.clock import Clock, system_clock
from secure_stream.core.errors import TokenReplayed
from secure_stream.services.state import StreamStateStore


class ReplayProtectionService:
    """Guard ensuring each token nonce is redeemed at most once.

    Nonces are kept only until their token's ``exp``. After that the token is
    rejected as expired before its nonce is ever looked at, so forgetting it
    cannot reopen a replay.
    """

    def __init__(self, store: StreamStateStore, *, clock: Clock = system_clock) -> None:
        self._store = store
        self._clock = clock

    def consume(self, nonce: str, exp: int) -> None:
        """Mark ``nonce`` as used.

        Raises:
            TokenReplayed: If the nonce was consumed before.
        """
        if not self._store.consume_nonce(nonce, exp, int(self._clock())):
            raise TokenReplayed()

    def purge_expired(self) -> int:
        """Forget nonces belonging to expired tokens."""
        return self._store.purge_nonces(int(self._clock()))
