"""Stream catalog records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class StreamKind(str, Enum):
    """How the player should treat the resolved source."""

    VIDEO = "video"
    YOUTUBE = "youtube"
    EMBED = "embed"
    DRM = "drm"


@dataclass(frozen=True)
class StreamDescriptor:
    """Immutable catalog entry describing where a movie is served from.

    ``drm`` maps a DRM scheme (``widevine``, ``fairplay``...) to its license
    server URL. It is forwarded to clients untouched.
    """

    id: str
    kind: StreamKind
    source: str
    drm: Mapping[str, str] | None = field(default=None)

    def __post_init__(self) -> None:
        if self.drm is not None:
            object.__setattr__(self, "drm", MappingProxyType(dict(self.drm)))

    @classmethod
    def from_dict(cls, movie_id: str, data: Mapping[str, Any]) -> StreamDescriptor:
        """Build a descriptor from a catalog JSON entry.

        Raises:
            ValueError: If the entry has an unknown kind, no source, or a
                malformed DRM map.
        """
        try:
            kind = StreamKind(str(data.get("kind", "")))
        except ValueError as err:
            raise ValueError(f"Stream {movie_id!r} has unknown kind {data.get('kind')!r}") from err

        source = data.get("source")
        if not isinstance(source, str) or not source:
            raise ValueError(f"Stream {movie_id!r} is missing a source")

        drm = data.get("drm")
        if drm is not None:
            if not isinstance(drm, Mapping) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in drm.items()
            ):
                raise ValueError(f"Stream {movie_id!r} has a malformed drm map")
        return cls(id=movie_id, kind=kind, source=source, drm=drm)

    def drm_payload(self) -> dict[str, str] | None:
        """Return the DRM license map as a plain dict for JSON responses."""
        return dict(self.drm) if self.drm is not None else None
