"""
Pydantic schemas for API request/response models.
"""

from .stream import (
    ErrorResponse,
    HealthResponse,
    OkResponse,
    SessionRequest,
    TokenRequest,
    TokenResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "OkResponse",
    "SessionRequest",
    "TokenRequest",
    "TokenResponse",
]
