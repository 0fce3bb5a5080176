"""Background reclamation of abandoned playback state.

The ``IdleSweeper`` periodically evicts sessions whose clients stopped sending
heartbeats without releasing their slot, together with nonces of expired
tokens and rate windows that have fully elapsed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from secure_stream.services.rate_limiter import FixedWindowRateLimiter
from secure_stream.services.replay import ReplayProtectionService
from secure_stream.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Counts of entries removed by one sweep."""

    sessions: int = 0
    nonces: int = 0
    windows: int = 0


class IdleSweeper:
    """Runs ``sweep_once`` on a fixed interval until stopped."""

    def __init__(
        self,
        registry: SessionRegistry,
        replay: ReplayProtectionService,
        rate_limiter: FixedWindowRateLimiter,
        *,
        interval_seconds: float = 30.0,
    ) -> None:
        self.registry = registry
        self.replay = replay
        self.rate_limiter = rate_limiter
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> SweepResult:
        """Evict idle sessions, expired nonces and elapsed rate windows."""
        result = SweepResult(
            sessions=self.registry.sweep_idle(),
            nonces=self.replay.purge_expired(),
            windows=self.rate_limiter.remove_expired(),
        )
        logger.debug(
            "Sweep removed %d sessions, %d nonces, %d rate windows",
            result.sessions,
            result.nonces,
            result.windows,
        )
        return result

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping = asyncio.Event()
            self._task = asyncio.create_task(self._run(self._stopping))

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for it to finish."""
        if self._task is None or self._stopping is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self, stopping: asyncio.Event) -> None:
        interval = max(0.01, float(self.interval_seconds))

        while not stopping.is_set():
            try:
                await asyncio.wait_for(stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if stopping.is_set():
                break

            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.error("IdleSweeper tick failed", exc_info=True)
