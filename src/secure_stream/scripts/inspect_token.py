# src/secure_stream/scripts/inspect_token.py
"""
Operator tool to inspect a playback token.

Verifies the signature with the configured ``STREAM_SIGNING_SECRET`` and
prints the decoded claims with their expiry status. Useful when a player
reports ``invalid_signature`` or ``token_expired`` and the token is at hand.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from urllib.parse import parse_qs, unquote, urlparse

from secure_stream.core.errors import InvalidSignature
from secure_stream.core.settings import settings
from secure_stream.services.tokens import TokenCodec


def extract_token(value: str) -> str:
    """Accept either a raw token or a playback URL carrying ``?token=``."""
    if "?" in value or value.startswith("/"):
        tokens = parse_qs(urlparse(value).query).get("token")
        if tokens:
            return tokens[0]
    return unquote(value)


def describe(token: str, secret: str, now: int) -> dict[str, object]:
    """Return the verification verdict and claims for ``token``."""
    try:
        payload = TokenCodec(secret).decode(token)
    except InvalidSignature as err:
        return {"valid_signature": False, "error": err.message}
    return {
        "valid_signature": True,
        "claims": payload.to_dict(),
        "expired": payload.exp < now,
        "seconds_left": payload.exp - now,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify and decode a playback token.")
    parser.add_argument("token", help="Token or playback URL")
    parser.add_argument(
        "--secret",
        default=None,
        help="Signing secret (defaults to STREAM_SIGNING_SECRET)",
    )
    args = parser.parse_args(argv)

    report = describe(
        extract_token(args.token),
        args.secret or settings.signing_secret,
        int(time.time()),
    )
    print(json.dumps(report, indent=2))
    return 0 if report["valid_signature"] else 1


if __name__ == "__main__":
    sys.exit(main())
