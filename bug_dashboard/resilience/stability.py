"""Retry with exponential backoff, circuit breaking and graceful fallback."""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from ..github_client.client import GitHubClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILURE_THRESHOLD = 5
COOLDOWN_SECONDS = 5 * 60.0
BASE_DELAY = 1.0
MAX_DELAY = 30.0


@dataclass
class CircuitState:
    """Failure bookkeeping for one operation id."""

    failure_count: int = 0
    last_failure_time: float = 0.0
    is_open: bool = False


class StabilityManager:
    """Retry and circuit-breaker state shared by every fetch operation.

    State is keyed by operation id, e.g. ``fetch:Fuser``. A circuit opens after
    ``failure_threshold`` recorded failures and closes again on the next
    success or once ``cooldown`` seconds have passed since the last failure.
    """

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        cooldown: float = COOLDOWN_SECONDS,
        base_delay: float = BASE_DELAY,
        max_delay: float = MAX_DELAY,
        jitter: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        """Initialize the manager.

        Args:
            failure_threshold: Recorded failures that open a circuit
            cooldown: Seconds after the last failure before an open circuit closes
            base_delay: Delay before the first retry, doubled on each attempt
            max_delay: Ceiling for a single backoff delay
            jitter: Fraction of the delay added at random (0 disables jitter)
            clock: Time source returning seconds
            sleep: Async sleep used between retries
            rng: Random source for jitter
        """
        self.failure_threshold = failure_threshold
        self.cooldown = cooldown
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.retry_attempts: dict[str, int] = {}
        self.circuits: dict[str, CircuitState] = {}

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (zero based)."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay += self._rng.uniform(0, self.jitter * delay)
        return delay

    async def retry_with_backoff(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = 3,
        operation_id: str = "default",
        *,
        retryable: Callable[[Exception], bool] | None = None,
    ) -> T:
        """Run ``operation``, retrying failures with exponential backoff.

        Errors rejected by ``retryable`` propagate at once and are not counted
        against the circuit. Once retries are exhausted, or the circuit is
        open, the failure is recorded and the triggering error re-raised.
        """
        while True:
            attempt = self.retry_attempts.get(operation_id, 0)
            try:
                result = await operation()
            except Exception as e:
                logger.error(
                    f"❌ Operation failed (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{operation_id}: {e}"
                )
                if retryable is not None and not retryable(e):
                    self.retry_attempts.pop(operation_id, None)
                    raise

                if attempt < max_retries and not self.is_circuit_open(operation_id):
                    self.retry_attempts[operation_id] = attempt + 1
                    delay = self.backoff_delay(attempt)
                    logger.info(f"⏳ Retrying {operation_id} in {delay:.1f}s...")
                    await self._sleep(delay)
                    continue

                self.retry_attempts.pop(operation_id, None)
                self._record_failure(operation_id)
                raise

            self.retry_attempts.pop(operation_id, None)
            self.reset_circuit(operation_id)
            return result

    def _record_failure(self, operation_id: str) -> None:
        circuit = self.circuits.setdefault(operation_id, CircuitState())
        circuit.failure_count += 1
        circuit.last_failure_time = self._clock()

        if circuit.failure_count >= self.failure_threshold and not circuit.is_open:
            circuit.is_open = True
            logger.warning(
                f"🔌 Circuit breaker opened for {operation_id} after "
                f"{circuit.failure_count} failures"
            )

    def is_circuit_open(self, operation_id: str) -> bool:
        """Check the circuit, closing it if the cooldown has passed."""
        circuit = self.circuits.get(operation_id)
        if circuit is None or not circuit.is_open:
            return False

        if self._clock() - circuit.last_failure_time > self.cooldown:
            logger.info(f"🔌 Circuit breaker for {operation_id} closed after cooldown")
            self.reset_circuit(operation_id)
            return False

        return True

    def reset_circuit(self, operation_id: str) -> None:
        self.circuits.pop(operation_id, None)

    def circuit_state(self, operation_id: str) -> CircuitState | None:
        return self.circuits.get(operation_id)

    def open_circuits(self) -> list[str]:
        return [op for op in list(self.circuits) if self.is_circuit_open(op)]

    async def with_fallback(
        self,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
        operation_id: str,
    ) -> T:
        """Return the primary result, or the fallback's if the primary fails."""
        try:
            return await primary()
        except Exception as e:
            logger.warning(
                f"⚠️  Primary operation failed for {operation_id}, using fallback: {e}"
            )
            return await fallback()

    async def health_check(self, client: "GitHubClient") -> dict[str, Any]:
        """Check GitHub reachability and report open circuits."""
        github_ok = False
        try:
            await client.get_rate_limit()
            github_ok = True
        except Exception as e:
            logger.error(f"GitHub health check failed: {e}")

        circuits_open = self.open_circuits()
        health = {
            "github": github_ok,
            "circuits_open": circuits_open,
            "overall": github_ok and not circuits_open,
        }
        logger.info(f"🏥 Health check: {health}")
        return health
