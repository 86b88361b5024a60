"""In-memory tier of the thumbnail cache."""

import asyncio
import logging
import time
from typing import Any

from coverscout.domain.entities import CachedThumbnail, ExpirableThumbnail

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL = 120.0


class ThumbnailMemoryCache:
    """Best-effort release ID -> thumbnail map holding thumbnails weakly.

    Hey future me - this cache never owns the image bytes! Entries point at their
    Thumbnail through a weak reference (see CachedThumbnail), so as soon as nobody uses
    a thumbnail anymore the garbage collector takes it and the entry turns disposable.
    Empty results ("no cover") are held until they expire.

    There's no timer. Disposable entries are swept inline by whoever calls
    maybe_cleanup() after the interval elapsed, so with zero traffic the map doesn't
    shrink. That's fine, it only holds tiny entries for dead thumbnails.
    """

    def __init__(self, cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL) -> None:
        """Initialize cache.

        Args:
            cleanup_interval: Min seconds between sweeps
        """
        self._entries: dict[str, CachedThumbnail] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.monotonic()

    async def get(self, release_id: str) -> ExpirableThumbnail | None:
        """Get the cached result for a release.

        Disposable and expired entries are dropped on the way and reported as a miss.

        Returns:
            Cached result, or None on a miss
        """
        async with self._lock:
            entry = self._entries.get(release_id)
            if entry is None:
                return None
            if entry.is_disposable() or entry.is_expired():
                del self._entries[release_id]
                return None
            result = entry.get()
            if result is None:
                # Collected between the check and the dereference
                del self._entries[release_id]
            return result

    async def put(self, release_id: str, result: ExpirableThumbnail) -> None:
        """Cache a result, replacing any previous entry for the release."""
        async with self._lock:
            self._entries[release_id] = CachedThumbnail(result)

    async def delete(self, release_id: str) -> bool:
        """Drop a release from the cache.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            return self._entries.pop(release_id, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def maybe_cleanup(self) -> int:
        """Sweep disposable entries if the cleanup interval has elapsed.

        Returns:
            Number of entries removed (0 if it wasn't time yet)
        """
        if time.monotonic() - self._last_cleanup < self._cleanup_interval:
            return 0
        return await self.cleanup_disposable()

    async def cleanup_disposable(self) -> int:
        """Remove all disposable entries.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            self._last_cleanup = time.monotonic()
            disposable = [key for key, entry in self._entries.items() if entry.is_disposable()]
            for key in disposable:
                del self._entries[key]
        if disposable:
            logger.debug("Removed %d disposable thumbnail cache entries", len(disposable))
        return len(disposable)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics (not locked, for monitoring only)."""
        total = len(self._entries)
        disposable = sum(1 for entry in self._entries.values() if entry.is_disposable())
        with_thumbnail = sum(1 for entry in self._entries.values() if entry.holds_reference)
        return {
            "total_entries": total,
            "disposable_entries": disposable,
            "entries_with_thumbnail": with_thumbnail,
        }

    def __len__(self) -> int:
        return len(self._entries)
