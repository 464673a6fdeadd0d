"""
Circuit breaker for bibliographic providers.

Stops calling a provider that keeps failing so a verification run degrades to
the remaining provider instead of waiting out every retry against a dead one.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Probing whether the provider recovered


class CircuitBreakerOpenError(Exception):
    """Raised instead of calling a provider whose circuit is open."""

    pass


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    success_threshold: int = 1  # Successes in half-open to close
    timeout: float = 60.0  # Seconds before attempting half-open
    expected_exception: type = Exception  # Exception type counted as failure


@dataclass
class CircuitBreakerStats:
    failures: int = 0
    successes: int = 0
    last_failure_time: Optional[float] = None
    state: CircuitState = CircuitState.CLOSED


class CircuitBreaker:
    """
    Async circuit breaker keyed to one provider.

    States:
    - CLOSED: calls pass through
    - OPEN: calls fail fast with CircuitBreakerOpenError
    - HALF_OPEN: the next call is a trial call; success closes, failure re-opens

    State changes happen between awaits, so no lock is needed on a single event loop.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.stats = CircuitBreakerStats()
        self._clock = clock

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await ``func(*args, **kwargs)`` under circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: If the circuit is open
            Exception: Whatever the call raised
        """
        if self.stats.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                logger.info(f"{self.name}: circuit breaker half-open, probing provider")
                self.stats.state = CircuitState.HALF_OPEN
                self.stats.successes = 0
            else:
                raise CircuitBreakerOpenError(
                    f"{self.name} circuit breaker is open after {self.stats.failures} failures"
                )

        try:
            result = await func(*args, **kwargs)
        except self.config.expected_exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self.stats.last_failure_time is None:
            return True
        return self._clock() - self.stats.last_failure_time >= self.config.timeout

    def _on_success(self) -> None:
        if self.stats.state == CircuitState.HALF_OPEN:
            self.stats.successes += 1
            if self.stats.successes >= self.config.success_threshold:
                logger.info(f"{self.name}: circuit breaker closed")
                self.stats.state = CircuitState.CLOSED
                self.stats.failures = 0
                self.stats.successes = 0
        elif self.stats.state == CircuitState.CLOSED:
            self.stats.failures = 0

    def _on_failure(self) -> None:
        self.stats.failures += 1
        self.stats.last_failure_time = self._clock()

        if self.stats.state == CircuitState.HALF_OPEN:
            logger.warning(f"{self.name}: trial call failed, circuit breaker open again")
            self.stats.state = CircuitState.OPEN
            self.stats.successes = 0
        elif self.stats.state == CircuitState.CLOSED:
            if self.stats.failures >= self.config.failure_threshold:
                logger.error(f"{self.name}: circuit breaker opening after {self.stats.failures} failures")
                self.stats.state = CircuitState.OPEN

    def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        logger.info(f"{self.name}: circuit breaker manually reset")
        self.stats = CircuitBreakerStats()

    def is_open(self) -> bool:
        return self.stats.state == CircuitState.OPEN
