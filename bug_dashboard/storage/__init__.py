"""In-memory storage for fetched GitHub data."""

from .cache import CacheEntry, CacheKeys, DataCache

__all__ = ["CacheEntry", "CacheKeys", "DataCache"]
