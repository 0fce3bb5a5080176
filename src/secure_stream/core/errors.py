"""Error taxonomy for stream access decisions.

Every failure raised by the playback services is a ``StreamAccessError``
subclass carrying the HTTP status and a stable machine-readable ``code``. The
API layer renders them as ``{"error": ..., "code": ...}`` JSON bodies. All of
them are terminal for the request; nothing is retried server side.
"""

from __future__ import annotations

from fastapi import status


class StreamAccessError(RuntimeError):
    """Base exception for rejected stream requests."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "stream_error"
    default_message: str = "Stream request rejected."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class OriginNotAllowed(StreamAccessError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "origin_not_allowed"
    default_message = "Origin is not allowed for stream token request."


class RefererNotAllowed(StreamAccessError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "referer_not_allowed"
    default_message = "Invalid referer for stream playback."


class Unauthenticated(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Unauthorized stream request."


class StreamNotFound(StreamAccessError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "stream_not_found"
    default_message = "Movie stream not found."


class RateLimited(StreamAccessError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    default_message = "Too many stream token requests. Please wait."


class ConcurrentSessionConflict(StreamAccessError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_session"
    default_message = "This account already has an active stream on another device."


class InvalidSignature(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_signature"
    default_message = "Invalid token signature."


class TokenExpired(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "token_expired"
    default_message = "Token expired."


class TokenStale(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "token_stale"
    default_message = "Token is stale."


class ClientMismatch(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "client_mismatch"
    default_message = "Token does not match this client."


class TokenReplayed(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "token_replayed"
    default_message = "Token already used."


class InvalidSession(StreamAccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_session"
    default_message = "Invalid session."


class MalformedRequest(StreamAccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "malformed_request"
    default_message = "Invalid request body."


class StateBusy(StreamAccessError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "state_busy"
    default_message = "Stream state is busy. Please retry."


__all__ = [
    "StreamAccessError",
    "OriginNotAllowed",
    "RefererNotAllowed",
    "Unauthenticated",
    "StreamNotFound",
    "RateLimited",
    "ConcurrentSessionConflict",
    "InvalidSignature",
    "TokenExpired",
    "TokenStale",
    "ClientMismatch",
    "TokenReplayed",
    "InvalidSession",
    "MalformedRequest",
    "StateBusy",
]
