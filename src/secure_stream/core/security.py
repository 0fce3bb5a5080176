"""Hashing and HMAC primitives used by the token protocol."""
from __future__ import annotations

import base64
import hashlib
import hmac


def hash_value(value: str) -> str:
    """Return a SHA-256 hex digest of the provided string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    """Decode a URL-safe base64 string, accepting omitted padding.

    Raises:
        ValueError: If ``data`` is not valid base64url.
    """
    padding = "=" * (-len(data) % 4)
    try:
        return base64.b64decode(data + padding, altchars=b"-_", validate=True)
    except Exception as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err


def sign(secret: str, message: str) -> str:
    """Return the base64url HMAC-SHA256 of ``message`` under ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return b64url_encode(digest)


def verify(secret: str, message: str, signature: str) -> bool:
    """Check ``signature`` against ``message`` in constant time."""
    expected = sign(secret, message)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8", "replace"))
