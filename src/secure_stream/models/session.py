"""Session registry records and the client fingerprint they are bound to."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from secure_stream.core.security import hash_value


@dataclass(frozen=True)
class Fingerprint:
    """Hashed client context (User-Agent, resolved IP) a token is bound to."""

    ua_hash: str
    ip_hash: str

    @classmethod
    def from_client(cls, user_agent: str, client_ip: str) -> Fingerprint:
        return cls(ua_hash=hash_value(user_agent), ip_hash=hash_value(client_ip))


@dataclass(frozen=True)
class ClientContext:
    """Raw request attributes identifying the calling client."""

    user_agent: str = "unknown"
    client_ip: str = "unknown"

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint.from_client(self.user_agent, self.client_ip)


@dataclass(frozen=True)
class PlaybackSession:
    """The single playback slot an account currently holds."""

    sid: str
    ua_hash: str
    ip_hash: str
    updated_at: int

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(ua_hash=self.ua_hash, ip_hash=self.ip_hash)

    def is_active(self, now: int, idle_seconds: int) -> bool:
        """Return True while the session has been seen within the idle window."""
        return now - self.updated_at <= idle_seconds

    def matches(self, sid: str, fingerprint: Fingerprint) -> bool:
        return self.sid == sid and self.fingerprint == fingerprint

    def touched(self, now: int) -> PlaybackSession:
        return PlaybackSession(
            sid=self.sid, ua_hash=self.ua_hash, ip_hash=self.ip_hash, updated_at=now
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sid": self.sid,
            "uaHash": self.ua_hash,
            "ipHash": self.ip_hash,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlaybackSession:
        return cls(
            sid=str(data["sid"]),
            ua_hash=str(data["uaHash"]),
            ip_hash=str(data["ipHash"]),
            updated_at=int(data["updatedAt"]),
        )


@dataclass
class RateWindow:
    """Fixed-window issuance counter for one account."""

    window_start: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"windowStart": self.window_start, "count": self.count}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RateWindow:
        return cls(window_start=float(data["windowStart"]), count=int(data["count"]))
