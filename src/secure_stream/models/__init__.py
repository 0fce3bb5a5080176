"""Domain records for stream access control."""

from .session import ClientContext, Fingerprint, PlaybackSession, RateWindow
from .stream import StreamDescriptor, StreamKind
from .token import TokenPayload

__all__ = [
    "ClientContext",
    "Fingerprint",
    "PlaybackSession",
    "RateWindow",
    "StreamDescriptor",
    "StreamKind",
    "TokenPayload",
]
