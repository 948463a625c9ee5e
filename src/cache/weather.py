"""Bounded in-memory cache for weather snapshots.

Entries expire ``cache_ttl_seconds`` after they were stored. When the cache
is full, the oldest 10% of entries (by insertion time) are evicted in one
batch before the new entry goes in. Reads do not refresh recency, so this
approximates LRU by insertion time rather than implementing true LRU.

Cache operations never raise; a disabled cache simply misses.
"""

import math
import time
from dataclasses import dataclass

from src.config.settings import Settings
from src.providers.base import WeatherSnapshot
from src.state.store import InMemoryStore, StateStore

EVICTION_DIVISOR = 10  # evict 10% of capacity per batch


@dataclass(frozen=True)
class CacheEntry:
    value: WeatherSnapshot
    stored_at: float


def cache_key(city: str) -> str:
    return f"weather:{city.lower()}"


class WeatherCache:
    def __init__(self, settings: Settings, store: StateStore | None = None):
        self.enabled = settings.enable_cache
        self.ttl_seconds = settings.cache_ttl_seconds
        self.max_size = settings.cache_max_size
        self.store = store if store is not None else InMemoryStore()

    def get(self, key: str) -> WeatherSnapshot | None:
        if not self.enabled:
            return None

        with self.store.locked():
            entry: CacheEntry | None = self.store.get(key)
            if entry is None:
                return None

            if time.monotonic() - entry.stored_at > self.ttl_seconds:
                self.store.delete(key)
                return None

            return entry.value

    def put(self, key: str, value: WeatherSnapshot) -> None:
        if not self.enabled:
            return

        with self.store.locked():
            if self.store.size() >= self.max_size:
                self._evict_oldest()
            self.store.set(key, CacheEntry(value=value, stored_at=time.monotonic()))

    def _evict_oldest(self) -> None:
        to_remove = math.ceil(self.max_size / EVICTION_DIVISOR)
        entries = sorted(self.store.items(), key=lambda item: item[1].stored_at)
        for key, _ in entries[:to_remove]:
            self.store.delete(key)

    def size(self) -> int:
        return self.store.size()

    def clear(self) -> None:
        self.store.clear()
