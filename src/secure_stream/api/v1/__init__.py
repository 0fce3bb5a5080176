"""Version 1 API endpoints."""

from .endpoints import stream_router

__all__ = ["stream_router"]
