"""Persisted lookup caches.

Each cache is one flat JSON object on disk, read once when the run starts and
rewritten in full when it ends. Entries are never evicted. With
``flush_every`` set, the file is also rewritten after that many new entries so
an aborted run keeps part of its work.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Generic, Iterator, Optional, TypeVar

from smilefjes.common.errors import StageError
from smilefjes.common.fs import read_json, write_json
from smilefjes.common.models import GeoCoordinate, RegistryEntity

V = TypeVar("V")

logger = logging.getLogger(__name__)


class JsonCache(Generic[V]):
    def __init__(self, path: Path | None = None, *, flush_every: int = 0) -> None:
        self.path = path
        self.flush_every = flush_every
        self.entries: dict[str, V] = {}
        self.pending = 0

    def _decode(self, value: Any) -> V:
        return value

    def _encode(self, value: V) -> Any:
        return value

    def _admit(self, key: str, value: V) -> bool:
        return True

    @classmethod
    def load(cls, path: Path, *, flush_every: int = 0):
        cache = cls(path, flush_every=flush_every)
        if not path.exists():
            return cache
        payload = read_json(path)
        if not isinstance(payload, dict):
            raise StageError(f"Cache file is not a JSON object: {path}")
        for key, value in payload.items():
            decoded = cache._decode(value)
            if cache._admit(key, decoded):
                cache.entries[key] = decoded
        logger.debug("loaded %d entries from %s", len(cache.entries), path)
        return cache

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def get(self, key: str) -> V | None:
        return self.entries.get(key)

    def set(self, key: str, value: V) -> None:
        self.entries[key] = value
        self.pending += 1
        if self.flush_every and self.pending >= self.flush_every:
            self.flush()

    def to_payload(self) -> dict[str, Any]:
        return {key: self._encode(value) for key, value in self.entries.items()}

    def flush(self) -> None:
        if self.path is None:
            self.pending = 0
            return
        write_json(self.path, self.to_payload())
        self.pending = 0


class RegistryCache(JsonCache[Optional[RegistryEntity]]):
    """Organization number -> registry entity, with explicit nulls for misses."""

    def _decode(self, value: Any) -> RegistryEntity | None:
        return RegistryEntity.from_payload(value)

    def _encode(self, value: RegistryEntity | None) -> Any:
        return None if value is None else value.to_payload()


class GeocodeCache(JsonCache[GeoCoordinate]):
    """Exact address text -> coordinate. Failed lookups are never stored."""

    def _decode(self, value: Any) -> GeoCoordinate:
        coordinate = GeoCoordinate.from_payload(value)
        if coordinate is None:
            raise StageError(f"Malformed geocode cache entry: {value!r}")
        return coordinate

    def _admit(self, key: str, value: GeoCoordinate) -> bool:
        if value.in_wgs84_range():
            return True
        logger.warning("dropping out-of-range geocode cache entry for %r", key)
        return False

    def _encode(self, value: GeoCoordinate) -> Any:
        return value.to_payload()
