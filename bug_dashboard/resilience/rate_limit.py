"""Self-throttling for outbound GitHub API requests."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60 * 60.0
HOURLY_QUOTA = 5000
UNAUTHENTICATED_QUOTA = 60
RESERVE_BUFFER = 100
MIN_REQUEST_SPACING = 0.1
LOW_REMAINING_WARNING = 100


class RateLimitGuard:
    """Rolling one-hour request window with a minimum inter-request delay.

    This is advisory: GitHub's own ``x-ratelimit-*`` headers are recorded
    through ``observe_response`` but never drive the waits here.
    """

    def __init__(
        self,
        hourly_quota: int = HOURLY_QUOTA,
        reserve: int = RESERVE_BUFFER,
        min_spacing: float = MIN_REQUEST_SPACING,
        window: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if hourly_quota < 1:
            raise ValueError("hourly_quota must be a positive integer")
        self.hourly_quota = hourly_quota
        # a reserve that swallows the whole quota falls back to a tenth of it
        self.reserve = reserve if 0 <= reserve < hourly_quota else hourly_quota // 10
        self.min_spacing = min_spacing
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self.provider_remaining: int | None = None
        self.provider_reset: datetime | None = None
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    async def acquire(self) -> None:
        """Wait until another request may be sent, then record it.

        Callers are admitted one at a time, so concurrent requests are spaced
        against each other rather than against the same last request.
        """
        async with self._lock:
            now = self._clock()
            self._prune(now)

            if self._timestamps and len(self._timestamps) >= self.hourly_quota - self.reserve:
                wait_time = self._timestamps[0] + self.window - now
                if wait_time > 0:
                    logger.warning(f"⏳ Rate limit approaching, waiting {wait_time:.1f}s")
                    await self._sleep(wait_time)
                    self._prune(self._clock())

            if self._timestamps:
                since_last = self._clock() - self._timestamps[-1]
                if since_last < self.min_spacing:
                    await self._sleep(self.min_spacing - since_last)

            self._timestamps.append(self._clock())

    def observe_response(self, headers: Mapping[str, str]) -> None:
        """Record GitHub's rate limit headers from a response."""
        remaining = headers.get("x-ratelimit-remaining")
        reset = headers.get("x-ratelimit-reset")
        if remaining is None or reset is None:
            return

        try:
            self.provider_remaining = int(remaining)
            self.provider_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)
        except ValueError:
            logger.debug(f"Ignoring malformed rate limit headers: {remaining}/{reset}")
            return

        logger.debug(
            f"📈 Rate limit: {self.provider_remaining} requests remaining, "
            f"resets at {self.provider_reset.isoformat()}"
        )
        if self.provider_remaining < LOW_REMAINING_WARNING:
            logger.warning(
                f"⚠️  Rate limit running low: {self.provider_remaining} requests remaining"
            )

    def provider_exhausted(self, threshold: int = 10) -> bool:
        """Check whether GitHub reported a nearly empty quota that has not reset."""
        if self.provider_remaining is None or self.provider_reset is None:
            return False
        return (
            self.provider_remaining <= threshold
            and datetime.now(timezone.utc) < self.provider_reset
        )

    @property
    def requests_in_window(self) -> int:
        self._prune(self._clock())
        return len(self._timestamps)

    def stats(self) -> dict[str, Any]:
        """Summarize local and provider-reported quota usage."""
        used = self.requests_in_window
        return {
            "requests_in_last_hour": used,
            "remaining_requests": self.hourly_quota - used,
            "provider_remaining": self.provider_remaining,
            "provider_reset": (
                self.provider_reset.isoformat() if self.provider_reset else None
            ),
        }
