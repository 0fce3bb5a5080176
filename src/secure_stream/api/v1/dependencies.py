"""Shared API dependencies for stream endpoints."""

from typing import Annotated, TypeVar

from fastapi import Depends, Header, Request, Response
from pydantic import BaseModel, ValidationError

from secure_stream.core.clock import Clock
from secure_stream.core.errors import MalformedRequest
from secure_stream.models import ClientContext
from secure_stream.services import PlaybackService, StreamServices

NO_STORE = "no-store"
UNKNOWN_CLIENT = "unknown"

BodyT = TypeVar("BodyT", bound=BaseModel)


def get_stream_services(request: Request) -> StreamServices:
    """Return the service graph owned by the running application."""
    return request.app.state.stream_services


def get_playback_service(
    services: Annotated[StreamServices, Depends(get_stream_services)],
) -> PlaybackService:
    return services.playback


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def resolve_client_ip(request: Request) -> str:
    """Return the caller's address, preferring the first ``X-Forwarded-For`` hop."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def get_client_context(request: Request) -> ClientContext:
    """Build the client context used to fingerprint tokens and sessions."""
    return ClientContext(
        user_agent=request.headers.get("user-agent") or UNKNOWN_CLIENT,
        client_ip=resolve_client_ip(request),
    )


def disable_caching(response: Response) -> None:
    response.headers["Cache-Control"] = NO_STORE


def require_allowed_origin(
    playback: Annotated[PlaybackService, Depends(get_playback_service)],
    origin: Annotated[str | None, Header()] = None,
) -> str | None:
    """Reject the request before its body is read when ``Origin`` is not allowed."""
    playback.check_origin(origin)
    return origin


async def read_json_body(request: Request, model: type[BodyT]) -> BodyT:
    """Parse the request body as JSON into ``model`` whatever its Content-Type.

    Players post with ``text/plain`` to skip the CORS preflight, so the
    declared media type is not trusted. An empty body yields the model's
    defaults.

    Raises:
        MalformedRequest: If the body is not a JSON object ``model`` accepts.
    """
    raw = await request.body()
    if not raw.strip():
        return model()
    try:
        return model.model_validate_json(raw)
    except ValidationError as err:
        raise MalformedRequest() from err


PlaybackServiceDep = Annotated[PlaybackService, Depends(get_playback_service)]
AllowedOriginDep = Annotated[str | None, Depends(require_allowed_origin)]
ClientDep = Annotated[ClientContext, Depends(get_client_context)]
ClockDep = Annotated[Clock, Depends(get_clock)]
