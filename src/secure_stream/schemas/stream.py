"""Schemas for the stream token and session endpoints."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from secure_stream.models import StreamKind


class _LenientBody(BaseModel):
    """Request body whose identifiers may arrive as JSON numbers."""

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    @field_validator("*", mode="before", check_fields=False)
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class TokenRequest(_LenientBody):
    """Request to mint a playback token."""

    movie_id: str = Field("", alias="movieId", description="Catalog identifier of the movie")
    uid: str = Field("", description="Account identifier supplied by the identity provider")


class SessionRequest(_LenientBody):
    """Heartbeat or release of a playback session."""

    uid: str = Field("", description="Account identifier")
    sid: str = Field("", description="Session identifier returned at issuance")


class TokenResponse(BaseModel):
    """Issued playback token details."""

    playback_url: str = Field(..., alias="playbackUrl", description="URL redeeming the token")
    expires_in: int = Field(..., alias="expiresIn", description="Token lifetime in seconds")
    kind: StreamKind = Field(..., description="How the player should treat the source")
    session_id: str = Field(..., alias="sessionId", description="Session bound to the token")
    drm: dict[str, str] | None = Field(None, description="License URL per DRM scheme")

    model_config = ConfigDict(populate_by_name=True)


class OkResponse(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    """Liveness probe payload."""

    ok: bool = True
    now: int = Field(..., description="Server time in milliseconds since the epoch")


class ErrorResponse(BaseModel):
    error: str
    code: str
