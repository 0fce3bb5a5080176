"""Signed playback token payload."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from secure_stream.models.session import Fingerprint

_STRING_FIELDS = ("movieId", "uid", "sid", "nonce", "uaHash", "ipHash")
_INT_FIELDS = ("iat", "exp")


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by a playback token. Never mutated after issuance."""

    movie_id: str
    uid: str
    sid: str
    iat: int
    exp: int
    nonce: str
    ua_hash: str
    ip_hash: str

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(ua_hash=self.ua_hash, ip_hash=self.ip_hash)

    def to_dict(self) -> dict[str, Any]:
        return {
            "movieId": self.movie_id,
            "uid": self.uid,
            "sid": self.sid,
            "iat": self.iat,
            "exp": self.exp,
            "nonce": self.nonce,
            "uaHash": self.ua_hash,
            "ipHash": self.ip_hash,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TokenPayload:
        """Validate and load decoded token claims.

        Raises:
            ValueError: If a claim is missing, empty, or of the wrong type.
        """
        for name in _STRING_FIELDS:
            value = data.get(name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Token claim {name!r} is missing or invalid")
        for name in _INT_FIELDS:
            value = data.get(name)
            # bool is an int subclass; reject it explicitly
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Token claim {name!r} is missing or invalid")
        return cls(
            movie_id=data["movieId"],
            uid=data["uid"],
            sid=data["sid"],
            iat=data["iat"],
            exp=data["exp"],
            nonce=data["nonce"],
            ua_hash=data["uaHash"],
            ip_hash=data["ipHash"],
        )
