"""Read-only stream catalog lookup."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from secure_stream.core.errors import StreamNotFound
from secure_stream.core.settings import Settings
from secure_stream.models import StreamDescriptor, StreamKind

logger = logging.getLogger(__name__)

DEFAULT_STREAMS: dict[str, dict[str, Any]] = {
    str(movie_id): {"kind": StreamKind.VIDEO.value, "source": f"/videos/{movie_id}.mp4"}
    for movie_id in range(116, 105, -1)
}


class StreamCatalog(Mapping[str, StreamDescriptor]):
    """Immutable mapping from movie identifier to stream descriptor."""

    def __init__(self, streams: Mapping[str, StreamDescriptor]) -> None:
        self._streams = dict(streams)

    def __getitem__(self, movie_id: str) -> StreamDescriptor:
        return self._streams[movie_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._streams)

    def __len__(self) -> int:
        return len(self._streams)

    def lookup(self, movie_id: str) -> StreamDescriptor:
        """Return the descriptor for ``movie_id``.

        Raises:
            StreamNotFound: If the catalog has no such movie.
        """
        descriptor = self._streams.get(movie_id)
        if descriptor is None:
            raise StreamNotFound()
        return descriptor

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StreamCatalog:
        """Build a catalog from ``{movie_id: {kind, source, drm?}}`` entries."""
        streams: dict[str, StreamDescriptor] = {}
        for movie_id, entry in data.items():
            if not isinstance(entry, Mapping):
                raise ValueError(f"Stream {movie_id!r} must be an object")
            streams[str(movie_id)] = StreamDescriptor.from_dict(str(movie_id), entry)
        return cls(streams)

    @classmethod
    def from_file(cls, path: str | Path) -> StreamCatalog:
        """Load a catalog from a JSON file."""
        content = Path(path).read_text(encoding="utf-8")
        data = json.loads(content)
        if not isinstance(data, Mapping):
            raise ValueError(f"Catalog file {path} must contain a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def default(cls) -> StreamCatalog:
        return cls.from_mapping(DEFAULT_STREAMS)


def load_catalog(config: Settings) -> StreamCatalog:
    """Return the catalog configured by ``STREAM_CATALOG_PATH`` or the built-in one."""
    if config.catalog_path:
        catalog = StreamCatalog.from_file(config.catalog_path)
        logger.info("Loaded %d streams from %s", len(catalog), config.catalog_path)
        return catalog
    return StreamCatalog.default()
