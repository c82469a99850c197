"""
Process-wide cache for remotely fetched badge bytes.

Lifecycle:
- empty at startup, filled by the first successful fetch
- concurrent cold-start callers share one in-flight fetch (single-flight)
- optional TTL; 0 keeps the entry until restart or invalidate()
- a failed fetch never writes to the cache

Only encoded bytes are cached. Every request decodes its own raster, so no
pixel buffer is shared between requests.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Any, Optional

from src.core.logging import get_logger
from src.core.metrics import record_badge_cache_hit, record_badge_cache_miss

logger = get_logger(__name__)


class BadgeCache:
    """Single-entry, single-flight cache of badge image bytes."""

    def __init__(self, ttl_seconds: int = 0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Optional[bytes] = None
        self._stored_at: Optional[float] = None
        self._lock = asyncio.Lock()

        self.hits = 0
        self.misses = 0
        self.fetches = 0

    def _current(self) -> Optional[bytes]:
        if self._data is None:
            return None
        if self.ttl_seconds and self._clock() - self._stored_at >= self.ttl_seconds:
            logger.info("badge_cache_expired", ttl_seconds=self.ttl_seconds)
            self._data = None
            self._stored_at = None
            return None
        return self._data

    def _hit(self, data: bytes) -> bytes:
        self.hits += 1
        record_badge_cache_hit()
        return data

    async def get_or_fetch(self, fetch: Callable[[], Awaitable[bytes]]) -> bytes:
        """
        Return cached bytes, or run `fetch` once and store its result.

        Exceptions from `fetch` propagate to every caller waiting on that
        attempt's lock and leave the cache empty.
        """
        data = self._current()
        if data is not None:
            return self._hit(data)

        async with self._lock:
            # Another request may have filled the cache while we waited.
            data = self._current()
            if data is not None:
                return self._hit(data)

            self.misses += 1
            record_badge_cache_miss()
            self.fetches += 1

            data = await fetch()
            if not data:
                raise ValueError("refusing to cache an empty badge payload")

            self._data = data
            self._stored_at = self._clock()
            logger.info("badge_cache_filled", size_bytes=len(data))
            return data

    def invalidate(self):
        """Drop the cached entry; the next request fetches again."""
        self._data = None
        self._stored_at = None
        logger.info("badge_cache_invalidated")

    @property
    def is_filled(self) -> bool:
        return self._current() is not None

    def stats(self) -> Dict[str, Any]:
        age = None
        if self._current() is not None:
            age = round(self._clock() - self._stored_at, 3)
        return {
            "filled": self._data is not None,
            "size_bytes": len(self._data) if self._data else 0,
            "age_seconds": age,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "fetches": self.fetches,
        }
