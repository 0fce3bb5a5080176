"""Tests for playback token signing and verification."""

import json

import pytest

from secure_stream.core import security
from secure_stream.core.errors import InvalidSignature
from secure_stream.models import TokenPayload
from secure_stream.services.tokens import TokenCodec

SECRET = "unit-test-secret"


def _payload(**overrides: object) -> TokenPayload:
    values: dict[str, object] = {
        "movie_id": "106",
        "uid": "u1",
        "sid": "sid-1",
        "iat": 1_700_000_000,
        "exp": 1_700_000_045,
        "nonce": "nonce-1",
        "ua_hash": security.hash_value("agent"),
        "ip_hash": security.hash_value("127.0.0.1"),
    }
    values.update(overrides)
    return TokenPayload(**values)  # type: ignore[arg-type]


def _sign_raw(claims: object, secret: str = SECRET) -> str:
    body = security.b64url_encode(json.dumps(claims).encode())
    return f"{body}.{security.sign(secret, body)}"


class TestTokenCodec:
    def test_decode_returns_encoded_payload(self) -> None:
        codec = TokenCodec(SECRET)
        payload = _payload()
        assert codec.decode(codec.encode(payload)) == payload

    def test_token_layout_is_payload_dot_signature(self) -> None:
        token = TokenCodec(SECRET).encode(_payload())
        body, signature = token.split(".")
        assert "=" not in token
        claims = json.loads(security.b64url_decode(body))
        assert claims["movieId"] == "106"
        assert set(claims) == {"movieId", "uid", "sid", "iat", "exp", "nonce", "uaHash", "ipHash"}
        assert signature == security.sign(SECRET, body)

    def test_forged_signature_rejected(self) -> None:
        token = TokenCodec(SECRET).encode(_payload())
        body, _ = token.split(".")
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(f"{body}.{security.sign('another-secret', body)}")

    def test_tampered_payload_rejected(self) -> None:
        token = TokenCodec(SECRET).encode(_payload())
        _, signature = token.split(".")
        forged_body = security.b64url_encode(
            json.dumps(_payload(uid="attacker").to_dict()).encode()
        )
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(f"{forged_body}.{signature}")

    @pytest.mark.parametrize("token", ["", "no-dot", ".sig", "body.", "a.b.c"])
    def test_malformed_tokens_rejected(self, token: str) -> None:
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(token)

    def test_signed_but_incomplete_claims_rejected(self) -> None:
        claims = _payload().to_dict()
        del claims["sid"]
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(_sign_raw(claims))

    def test_signed_non_object_payload_rejected(self) -> None:
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(_sign_raw(["not", "an", "object"]))

    def test_boolean_timestamp_rejected(self) -> None:
        claims = _payload().to_dict()
        claims["exp"] = True
        with pytest.raises(InvalidSignature):
            TokenCodec(SECRET).decode(_sign_raw(claims))

    def test_empty_secret_refused(self) -> None:
        with pytest.raises(ValueError):
            TokenCodec("")


def test_verify_is_false_for_non_ascii_signature() -> None:
    assert security.verify(SECRET, "payload", "sïgnature") is False


def test_b64url_decode_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        security.b64url_decode("***")
