"""Stream access services: catalog, throttling, sessions, tokens."""

from .catalog import StreamCatalog
from .container import StreamServices, build_stream_services
from .playback import IssuedToken, PlaybackService
from .rate_limiter import FixedWindowRateLimiter
from .replay import ReplayProtectionService
from .session_registry import SessionRegistry, may_acquire
from .state import MemoryStreamStateStore, RedisStreamStateStore, StreamStateStore
from .sweeper import IdleSweeper, SweepResult
from .tokens import TokenCodec

__all__ = [
    "FixedWindowRateLimiter",
    "IdleSweeper",
    "IssuedToken",
    "MemoryStreamStateStore",
    "PlaybackService",
    "RedisStreamStateStore",
    "ReplayProtectionService",
    "SessionRegistry",
    "StreamCatalog",
    "StreamServices",
    "StreamStateStore",
    "SweepResult",
    "TokenCodec",
    "build_stream_services",
    "may_acquire",
]
