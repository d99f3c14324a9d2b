"""
Circuit breaker for remote data-access calls.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict

from shared.logging import get_logger
from shared.errors import SyncLayerException


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, calls blocked
    HALF_OPEN = "half_open"  # Probing whether the remote recovered


class CircuitBreakerOpenError(SyncLayerException):
    """Raised when a call is blocked by an open circuit."""

    def __init__(self, name: str):
        super().__init__("CIRCUIT_OPEN", f"Circuit breaker '{name}' is open", {"breaker": name})


class CircuitBreaker:
    """Blocks calls to a failing remote until a recovery timeout has passed."""

    def __init__(self,
                 name: str = "default",
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.logger = get_logger(f"circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitBreakerState:
        if self._state is CircuitBreakerState.OPEN and self._clock() - self._opened_at >= self.recovery_timeout:
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker transitioning to half-open")
        return self._state

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute ``func`` under breaker protection."""
        if self.state is CircuitBreakerState.OPEN:
            raise CircuitBreakerOpenError(self.name)

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise

        if self._state is CircuitBreakerState.HALF_OPEN:
            self.logger.info("Circuit breaker reset to closed after successful call")
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        return result

    def _record_failure(self):
        self._failure_count += 1
        if self._state is CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitBreakerState.OPEN
            self._opened_at = self._clock()
            self.logger.warning(
                "Circuit breaker opened due to failures",
                failure_count=self._failure_count,
                threshold=self.failure_threshold
            )

    def reset(self):
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0

    def get_state(self) -> Dict[str, Any]:
        """Current breaker state."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }
