"""In-memory TTL cache for GitHub data."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60.0
DEFAULT_STALE_TIME = 60.0


@dataclass
class CacheEntry:
    """A cached value with its write time and absolute expiry."""

    value: Any
    timestamp: float
    expires_at: float


class CacheKeys:
    """Cache key helpers shared by the loader and the HTTP layer."""

    COMBINED_METRICS = "combined:metrics"
    PROGRESSION_DATA = "progression:data"

    @staticmethod
    def issues(repo: str) -> str:
        return f"issues:{repo}"

    @staticmethod
    def critical_issues(repo: str) -> str:
        return f"issues:{repo}:critical"

    @staticmethod
    def metrics(repo: str) -> str:
        return f"metrics:{repo}"


class DataCache:
    """Key/value store with per-entry expiry and a separate staleness check.

    Expired entries are evicted lazily when read. There is no size bound:
    the key space is one entry per repository plus a few aggregate keys.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when ``set`` gets none
            clock: Time source returning seconds
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, replacing any existing entry for the key."""
        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value,
            timestamp=now,
            expires_at=now + (self.default_ttl if ttl is None else ttl),
        )

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def is_stale(self, key: str, stale_time: float = DEFAULT_STALE_TIME) -> bool:
        """Check whether an entry is missing or older than ``stale_time``.

        A stale entry may still be unexpired and servable as a fallback.
        """
        entry = self._entries.get(key)
        if entry is None:
            return True
        return self._clock() - entry.timestamp > stale_time

    def clear(self) -> None:
        """Drop every entry."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"🧹 Cleared {count} cached entries")

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
