"""Encoding and signature verification for playback tokens.

A token is ``base64url(json(payload)) + "." + base64url(hmac_sha256(payload))``
where the HMAC is computed over the base64url payload text.
"""

from __future__ import annotations

import json

from secure_stream.core import security
from secure_stream.core.errors import InvalidSignature
from secure_stream.models import TokenPayload


class TokenCodec:
    """Sign and verify playback tokens with a shared secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret

    def encode(self, payload: TokenPayload) -> str:
        body = json.dumps(payload.to_dict(), separators=(",", ":"))
        payload_b64 = security.b64url_encode(body.encode("utf-8"))
        return f"{payload_b64}.{security.sign(self._secret, payload_b64)}"

    def decode(self, token: str) -> TokenPayload:
        """Verify ``token`` and return its payload.

        The signature is checked before the payload is parsed, so an unsigned
        payload is never interpreted.

        Raises:
            InvalidSignature: If the token is malformed or the signature does
                not match.
        """
        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidSignature()
        payload_b64, signature = parts
        if not security.verify(self._secret, payload_b64, signature):
            raise InvalidSignature()

        try:
            data = json.loads(security.b64url_decode(payload_b64).decode("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("Token payload must be an object")
            return TokenPayload.from_dict(data)
        except ValueError as err:
            raise InvalidSignature("Invalid stream token payload.") from err
