"""In-memory result cache for food searches."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from food_lookup.domain.foods import FoodRecord


class ResultCache(Protocol):
    """Cache interface for search results keyed by search key."""

    def get(self, key: str) -> list[FoodRecord] | None:
        """Return cached records if present and not expired."""

    def set(self, key: str, records: list[FoodRecord], ttl_seconds: float) -> None:
        """Store records with a TTL in seconds."""

    def delete(self, key: str) -> None:
        """Drop a single key."""

    def clear(self) -> None:
        """Drop every key."""


@dataclass
class _CacheEntry:
    records: list[FoodRecord]
    expires_at: float


@dataclass
class InMemoryResultCache(ResultCache):
    """Process-lifetime cache; nothing is written to disk."""

    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, _CacheEntry] = field(default_factory=dict, init=False)

    def get(self, key: str) -> list[FoodRecord] | None:
        """Return cached records if they haven't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.records

    def set(self, key: str, records: list[FoodRecord], ttl_seconds: float) -> None:
        """Store non-empty records; empty results never block a later fetch."""
        if not records or ttl_seconds <= 0:
            return
        self._entries[key] = _CacheEntry(
            records=records, expires_at=self.clock() + ttl_seconds
        )

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
