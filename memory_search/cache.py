"""
In-memory result cache module for Memory Search MCP Server.

Contains the ResultCache class for memoizing search results.
"""

import time
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from .models import CacheEntry

logger = structlog.get_logger(__name__)


class ResultCache:
    """Bounded in-memory cache with a fixed TTL per entry.

    When full, the entry inserted longest ago is evicted, regardless of how
    recently it was read. Reads never extend an entry's lifetime.
    """

    def __init__(self, max_size: int = 1000, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}  # insertion order is eviction order
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def put(self, key: str, value: Any) -> None:
        """Insert value, evicting the oldest insertion when at capacity."""
        if self.max_size <= 0:
            return

        # Re-inserting a key counts as a fresh insertion
        if self._entries.pop(key, None) is None:
            while len(self._entries) >= self.max_size:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                self.evictions += 1
                logger.debug("cache_evicted", key=oldest_key)

        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + self.ttl)

    def invalidate(self, patterns: Iterable[str]) -> int:
        """Remove every entry whose key contains any of the patterns."""
        patterns = list(patterns)
        stale = [key for key in self._entries if any(pattern in key for pattern in patterns)]
        for key in stale:
            del self._entries[key]

        if stale:
            logger.debug("cache_invalidated", patterns=patterns, removed=len(stale))
        return len(stale)

    def purge_expired(self) -> int:
        """Drop all expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
