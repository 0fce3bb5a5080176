# src/secure_stream/main.py
"""Main entry point for the secure stream service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from secure_stream.api.v1 import stream_router
from secure_stream.api.v1.dependencies import NO_STORE
from secure_stream.core.clock import Clock, system_clock
from secure_stream.core.errors import MalformedRequest, StreamAccessError
from secure_stream.core.settings import Settings, settings
from secure_stream.services import StreamServices, build_stream_services

logger = logging.getLogger(__name__)


def configure_logging(config: Settings) -> None:
    """Configure root logging from ``STREAM_LOG_LEVEL``."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _error_response(exc: StreamAccessError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Cache-Control": NO_STORE},
    )


async def handle_stream_error(request: Request, exc: StreamAccessError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.code)
    return _error_response(exc)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Malformed %s %s: %s", request.method, request.url.path, exc)
    return _error_response(MalformedRequest())


def create_app(
    config: Settings | None = None,
    *,
    clock: Clock = system_clock,
    services: StreamServices | None = None,
) -> FastAPI:
    """Build the FastAPI application and its service graph.

    Args:
        config: Settings to use; defaults to the environment-derived settings.
        clock: Time source shared by every service.
        services: Prebuilt service graph, mainly for tests.

    Returns:
        The configured application. The idle sweeper starts with it.
    """
    config = config or settings
    services = services or build_stream_services(config, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if config.uses_default_secret:
            logger.warning("STREAM_SIGNING_SECRET is not set; using the insecure default secret")
        await services.sweeper.start()
        logger.info(
            "Secure stream service ready (origin=%s, ttl=%ss, idle=%ss, rate=%s/min)",
            config.allowed_origin,
            config.token_ttl_seconds,
            config.session_idle_seconds,
            config.token_rate_limit_per_minute,
        )
        try:
            yield
        finally:
            await services.sweeper.stop()

    app = FastAPI(
        title=config.app_name,
        description="Signed, client-bound playback tokens with one stream per account",
        version=config.app_version,
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.clock = clock
    app.state.stream_services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allowed_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(StreamAccessError, handle_stream_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]

    app.include_router(stream_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, object]:
        """Health check endpoint to verify the service is running."""
        return {"ok": True, "now": int(clock() * 1000)}

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    configure_logging(settings)
    uvicorn.run(
        "secure_stream.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
