"""Request throttling, retry and circuit-breaker helpers."""

from .rate_limit import RateLimitGuard
from .stability import CircuitState, StabilityManager

__all__ = ["CircuitState", "RateLimitGuard", "StabilityManager"]
