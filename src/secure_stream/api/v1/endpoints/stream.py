"""Playback token and session endpoints.

The player asks ``/token`` for a playback URL, follows it to ``/play`` which
redirects to the media source, then keeps its slot alive with ``/heartbeat``
and gives it back with ``/release``.

Request bodies are read only after the ``Origin`` check has passed and are
parsed as JSON regardless of the declared Content-Type.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from secure_stream.api.v1.dependencies import (
    AllowedOriginDep,
    ClientDep,
    ClockDep,
    PlaybackServiceDep,
    disable_caching,
    read_json_body,
)
from secure_stream.schemas import (
    ErrorResponse,
    HealthResponse,
    OkResponse,
    SessionRequest,
    TokenRequest,
    TokenResponse,
)

router = APIRouter(
    prefix="/stream",
    tags=["stream"],
    dependencies=[Depends(disable_caching)],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
)

RefererHeader = Annotated[str | None, Header()]

PLAYBACK_REDIRECT_HEADERS = {
    "Cache-Control": "no-store, private",
    "Referrer-Policy": "no-referrer",
}


def _json_body(model: type[BaseModel]) -> dict[str, Any]:
    """OpenAPI request body for a handler that parses the body itself."""
    schema = model.model_json_schema(by_alias=True)
    return {"requestBody": {"content": {"application/json": {"schema": schema}}}}


@router.get("/health", response_model=HealthResponse)
async def health(clock: ClockDep) -> HealthResponse:
    """Liveness probe reporting the server clock in milliseconds."""
    return HealthResponse(ok=True, now=int(clock() * 1000))


@router.post(
    "/token",
    response_model=TokenResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
    openapi_extra=_json_body(TokenRequest),
)
async def issue_token(
    request: Request,
    playback: PlaybackServiceDep,
    client: ClientDep,
    origin: AllowedOriginDep,
) -> TokenResponse:
    """Mint a short-lived playback URL bound to the calling client.

    Args:
        request: Incoming request; its body carries ``movieId`` and ``uid``
        playback: Playback service
        client: Fingerprinting attributes of the caller
        origin: ``Origin`` header, already checked against the configured origin

    Returns:
        Playback URL, lifetime, stream kind, session id and DRM license map
    """
    body = await read_json_body(request, TokenRequest)
    issued = playback.issue_token(body.movie_id, body.uid, origin=origin, client=client)
    return TokenResponse(
        playback_url=issued.playback_url,
        expires_in=issued.expires_in,
        kind=issued.kind,
        session_id=issued.session_id,
        drm=issued.drm,
    )


@router.get(
    "/play",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def play(
    playback: PlaybackServiceDep,
    client: ClientDep,
    token: Annotated[str | None, Query()] = None,
    referer: RefererHeader = None,
) -> RedirectResponse:
    """Redeem a playback token and redirect to the media source."""
    location = playback.redeem(token, referer=referer, client=client)
    return RedirectResponse(
        location,
        status_code=status.HTTP_302_FOUND,
        headers=PLAYBACK_REDIRECT_HEADERS,
    )


@router.post("/heartbeat", response_model=OkResponse, openapi_extra=_json_body(SessionRequest))
async def heartbeat(
    request: Request,
    playback: PlaybackServiceDep,
    client: ClientDep,
    origin: AllowedOriginDep,
) -> OkResponse:
    """Keep the caller's playback session active."""
    body = await read_json_body(request, SessionRequest)
    playback.heartbeat(body.uid, body.sid, origin=origin, client=client)
    return OkResponse()


@router.post("/release", response_model=OkResponse, openapi_extra=_json_body(SessionRequest))
async def release(
    request: Request,
    playback: PlaybackServiceDep,
    client: ClientDep,
    origin: AllowedOriginDep,
) -> OkResponse:
    """Give the account's playback slot back; succeeds even when nothing matched."""
    body = await read_json_body(request, SessionRequest)
    playback.release(body.uid, body.sid, origin=origin, client=client)
    return OkResponse()
