"""API endpoint modules for version 1."""

from .stream import router as stream_router

__all__ = ["stream_router"]
