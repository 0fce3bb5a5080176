"""Playback token issuance, redemption and session lifecycle.

This is the protocol the player follows:

1. ``issue_token`` validates the request and mints a short-lived signed token
   bound to the requesting client.
2. The client follows the playback URL; ``redeem`` verifies the token,
   consumes its nonce, claims the account's playback slot and resolves the
   redirect target.
3. While playing, the client calls ``heartbeat`` to keep its slot active and
   ``release`` when it stops. Abandoned slots are reclaimed by the idle
   sweeper.

Every check raises a ``StreamAccessError`` subclass; the first failing check
wins.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from urllib.parse import quote

from secure_stream.core.clock import Clock, system_clock
from secure_stream.core.errors import (
    ClientMismatch,
    InvalidSession,
    MalformedRequest,
    OriginNotAllowed,
    RateLimited,
    RefererNotAllowed,
    TokenExpired,
    TokenStale,
    Unauthenticated,
)
from secure_stream.core.settings import Settings
from secure_stream.models import (
    ClientContext,
    PlaybackSession,
    StreamDescriptor,
    StreamKind,
    TokenPayload,
)
from secure_stream.services.catalog import StreamCatalog
from secure_stream.services.rate_limiter import FixedWindowRateLimiter
from secure_stream.services.replay import ReplayProtectionService
from secure_stream.services.session_registry import SessionRegistry
from secure_stream.services.tokens import TokenCodec

logger = logging.getLogger(__name__)

PLAY_PATH = "/api/stream/play"

_YOUTUBE_ID = re.compile(r"(?:v=|youtu\.be/)([^&?/]+)")
_YOUTUBE_EMBED = (
    "https://www.youtube.com/embed/{video_id}"
    "?autoplay=1&rel=0&modestbranding=1&fs=0&disablekb=1"
)


def youtube_embed_url(url: str) -> str:
    """Rewrite a YouTube watch/share URL into an embeddable player URL."""
    match = _YOUTUBE_ID.search(url)
    if not match:
        return url
    return _YOUTUBE_EMBED.format(video_id=match.group(1))


def resolve_redirect(stream: StreamDescriptor) -> str:
    if stream.kind is StreamKind.YOUTUBE:
        return youtube_embed_url(stream.source)
    return stream.source


@dataclass(frozen=True)
class IssuedToken:
    """Result of a successful issuance."""

    token: str
    playback_url: str
    expires_in: int
    kind: StreamKind
    session_id: str
    drm: dict[str, str] | None


class PlaybackService:
    """Coordinates the catalog, rate limiter, registry and replay guard."""

    def __init__(
        self,
        config: Settings,
        *,
        catalog: StreamCatalog,
        registry: SessionRegistry,
        rate_limiter: FixedWindowRateLimiter,
        replay: ReplayProtectionService,
        codec: TokenCodec,
        clock: Clock = system_clock,
        play_path: str = PLAY_PATH,
    ) -> None:
        self._config = config
        self.catalog = catalog
        self.registry = registry
        self.rate_limiter = rate_limiter
        self.replay = replay
        self._codec = codec
        self._clock = clock
        self._play_path = play_path

    # --- Request provenance ----------------------------------------------------------
    def check_origin(self, origin: str | None) -> None:
        if not origin or origin != self._config.allowed_origin:
            raise OriginNotAllowed()

    def check_referer(self, referer: str | None) -> None:
        if not referer or not referer.startswith(self._config.allowed_origin):
            raise RefererNotAllowed()

    # --- Token issuance --------------------------------------------------------------
    def issue_token(
        self, movie_id: str, uid: str, *, origin: str | None, client: ClientContext
    ) -> IssuedToken:
        """Mint a playback token for ``movie_id`` on behalf of ``uid``.

        No session is registered here; the playback slot is claimed when the
        token is redeemed.
        """
        self.check_origin(origin)
        stream = self.catalog.lookup(movie_id)
        if not uid:
            raise Unauthenticated()

        fingerprint = client.fingerprint
        with self.registry.lock(uid):
            if not self.rate_limiter.allow(uid):
                logger.info("Token issuance rate limited for uid=%s", uid)
                raise RateLimited()
            self.registry.ensure_available(uid, fingerprint)

        now = int(self._clock())
        ttl = self._config.token_ttl_seconds
        payload = TokenPayload(
            movie_id=movie_id,
            uid=uid,
            sid=str(uuid.uuid4()),
            iat=now,
            exp=now + ttl,
            nonce=str(uuid.uuid4()),
            ua_hash=fingerprint.ua_hash,
            ip_hash=fingerprint.ip_hash,
        )
        token = self._codec.encode(payload)
        logger.info("Issued token uid=%s movie=%s sid=%s", uid, movie_id, payload.sid)
        return IssuedToken(
            token=token,
            playback_url=f"{self._play_path}?token={quote(token, safe='')}",
            expires_in=ttl,
            kind=stream.kind,
            session_id=payload.sid,
            drm=stream.drm_payload(),
        )

    # --- Token redemption ------------------------------------------------------------
    def redeem(self, token: str | None, *, referer: str | None, client: ClientContext) -> str:
        """Verify ``token`` and claim the playback slot; return the redirect target."""
        self.check_referer(referer)
        if not token:
            raise MalformedRequest("Missing token.")

        payload = self._codec.decode(token)
        now = int(self._clock())
        if payload.exp < now:
            raise TokenExpired()
        if now - payload.iat > self._config.max_token_age_seconds:
            raise TokenStale()

        fingerprint = client.fingerprint
        if payload.fingerprint != fingerprint:
            logger.warning("Token client mismatch uid=%s sid=%s", payload.uid, payload.sid)
            raise ClientMismatch()

        self.replay.consume(payload.nonce, payload.exp)
        stream = self.catalog.lookup(payload.movie_id)

        with self.registry.lock(payload.uid):
            self.registry.ensure_available(payload.uid, fingerprint)
            self.registry.put(
                payload.uid,
                PlaybackSession(
                    sid=payload.sid,
                    ua_hash=fingerprint.ua_hash,
                    ip_hash=fingerprint.ip_hash,
                    updated_at=int(self._clock()),
                ),
            )
        logger.info(
            "Redeemed token uid=%s movie=%s sid=%s", payload.uid, payload.movie_id, payload.sid
        )
        return resolve_redirect(stream)

    # --- Session lifecycle -----------------------------------------------------------
    def heartbeat(self, uid: str, sid: str, *, origin: str | None, client: ClientContext) -> None:
        """Keep the caller's session active.

        Raises:
            InvalidSession: If no session matches ``uid``, ``sid`` and the
                caller's fingerprint.
        """
        self.check_origin(origin)
        if not uid or not sid:
            raise MalformedRequest("Missing uid or sid.")
        if not self.registry.touch(uid, sid, client.fingerprint):
            raise InvalidSession()

    def release(self, uid: str, sid: str, *, origin: str | None, client: ClientContext) -> None:
        """End the caller's session early. Mismatches are silently ignored."""
        self.check_origin(origin)
        if not uid or not sid:
            raise MalformedRequest("Missing uid or sid.")
        if self.registry.release(uid, sid, client.fingerprint):
            logger.info("Released session uid=%s sid=%s", uid, sid)
