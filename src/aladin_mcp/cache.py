"""In-memory response cache for Aladin API calls.

Entries expire after a per-entry TTL and are evicted lazily when read.
When the cache is full the oldest inserted entry is dropped (FIFO), which
is enough for a catalog whose hot set is small and whose entries all expire
within half an hour anyway.

Not thread-safe: the server runs on a single asyncio loop and the cache is
only touched between awaits.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .constants import CACHE_KEY_PREFIX, MAX_CACHE_SIZE

logger = logging.getLogger(__name__)


def make_cache_key(endpoint: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic key; equal parameter sets give equal keys."""
    payload = json.dumps(params, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)
    return f"{CACHE_KEY_PREFIX}:{endpoint}:{payload}"


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class ResponseCache:
    """Bounded TTL cache with FIFO eviction."""

    def __init__(self, max_size: int = MAX_CACHE_SIZE, clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._expirations += 1
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if key in self._entries:
            # Replace in place; insertion order (and FIFO position) is kept
            self._entries[key] = CacheEntry(value, self._clock(), ttl)
            return
        if len(self._entries) >= self._max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self._evictions += 1
            logger.debug("Cache full (%d entries); evicted %s", self._max_size, oldest)
        self._entries[key] = CacheEntry(value, self._clock(), ttl)

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cache cleared (%d entries removed)", count)

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "expirations": self._expirations,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
