"""Cache implementations."""

from coverscout.application.cache.thumbnail_memory_cache import ThumbnailMemoryCache

__all__ = ["ThumbnailMemoryCache"]
