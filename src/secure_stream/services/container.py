"""Wiring of the playback services around a single state store."""

from __future__ import annotations

from dataclasses import dataclass

from secure_stream.core.clock import Clock, system_clock
from secure_stream.core.settings import Settings
from secure_stream.services.catalog import StreamCatalog, load_catalog
from secure_stream.services.playback import PlaybackService
from secure_stream.services.rate_limiter import FixedWindowRateLimiter
from secure_stream.services.replay import ReplayProtectionService
from secure_stream.services.session_registry import SessionRegistry
from secure_stream.services.state import StreamStateStore, create_state_store
from secure_stream.services.sweeper import IdleSweeper
from secure_stream.services.tokens import TokenCodec


@dataclass(frozen=True)
class StreamServices:
    """Everything one application instance owns."""

    store: StreamStateStore
    playback: PlaybackService
    sweeper: IdleSweeper


def build_stream_services(
    config: Settings,
    *,
    clock: Clock = system_clock,
    store: StreamStateStore | None = None,
    catalog: StreamCatalog | None = None,
) -> StreamServices:
    """Construct the service graph described by ``config``."""
    store = store if store is not None else create_state_store(config)
    catalog = catalog if catalog is not None else load_catalog(config)

    registry = SessionRegistry(store, idle_seconds=config.session_idle_seconds, clock=clock)
    rate_limiter = FixedWindowRateLimiter(
        store,
        limit=config.token_rate_limit_per_minute,
        window_seconds=config.rate_window_seconds,
        clock=clock,
    )
    replay = ReplayProtectionService(store, clock=clock)
    playback = PlaybackService(
        config,
        catalog=catalog,
        registry=registry,
        rate_limiter=rate_limiter,
        replay=replay,
        codec=TokenCodec(config.signing_secret),
        clock=clock,
    )
    sweeper = IdleSweeper(
        registry,
        replay,
        rate_limiter,
        interval_seconds=config.sweep_interval_seconds,
    )
    return StreamServices(store=store, playback=playback, sweeper=sweeper)
