"""
Circuit Breaker for store access.

When a store keeps failing, further calls fail fast with
StoreUnavailableError instead of piling up behind timeouts. The breaker
never retries a call; retrying is left to the caller.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Too many consecutive failures, calls are rejected
- HALF_OPEN: Reset timeout elapsed, one trial call is let through and
  concurrent callers are rejected until it finishes
"""

import logging
import threading
import time
from datetime import timedelta
from enum import Enum
from typing import Callable, Any, Optional, Type, Tuple, Union

from ..errors import StoreUnavailableError


logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"          # Normal operation
    OPEN = "open"              # Rejecting calls
    HALF_OPEN = "half_open"    # Trial call allowed


class CircuitBreakerOpenError(StoreUnavailableError):
    """Raised instead of calling the store while the circuit is OPEN."""
    pass


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Examples:
        >>> cb = CircuitBreaker(failure_threshold=5, timeout=timedelta(seconds=30))
        >>> sessions = cb.call(store.find_sessions_for_teacher, "t_1", day)
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: timedelta = timedelta(seconds=30),
        expected_exception: Union[Type[Exception], Tuple[Type[Exception], ...]] = StoreUnavailableError,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before opening the circuit
            timeout: Time to stay OPEN before allowing a trial call
            expected_exception: Exception type(s) counted as failures
            clock: Monotonic clock in seconds (injectable for tests)
        """
        if failure_threshold <= 0:
            raise ValueError(f"failure_threshold must be positive, got {failure_threshold}")

        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.expected_exception = expected_exception
        self._clock = clock
        self._lock = threading.Lock()

        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self.state = CircuitState.CLOSED
        self._trial_in_flight = False

        logger.debug(
            f"Circuit breaker initialized: "
            f"threshold={failure_threshold}, timeout={timeout}"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute func with circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: If the circuit is OPEN, or HALF_OPEN with a trial call running
            Exception: Anything raised by func (counted if expected)
        """
        with self._lock:
            if self.state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    logger.info("Circuit breaker: entering HALF_OPEN state")
                    self.state = CircuitState.HALF_OPEN
                else:
                    raise CircuitBreakerOpenError(
                        f"Store circuit is OPEN "
                        f"(consecutive failures: {self.failure_count})"
                    )
            trial = self.state == CircuitState.HALF_OPEN
            if trial:
                if self._trial_in_flight:
                    raise CircuitBreakerOpenError("Store circuit is HALF_OPEN, trial call in progress")
                self._trial_in_flight = True

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        else:
            self._on_success()
        finally:
            if trial:
                with self._lock:
                    self._trial_in_flight = False
        return result

    def _should_attempt_reset(self) -> bool:
        """Check if the reset timeout has elapsed. Caller holds the lock."""
        if self.last_failure_at is None:
            return True
        return self._clock() - self.last_failure_at >= self.timeout.total_seconds()

    def _on_success(self):
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info("Circuit breaker: back to CLOSED state")
            self.state = CircuitState.CLOSED
            self.failure_count = 0

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_at = self._clock()

            logger.warning(
                f"Circuit breaker: failure #{self.failure_count} "
                f"(threshold={self.failure_threshold})"
            )

            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                if self.state != CircuitState.OPEN:
                    logger.error(f"Circuit breaker: OPEN after {self.failure_count} failures")
                self.state = CircuitState.OPEN

    def reset(self):
        """Manually reset circuit breaker to CLOSED state."""
        with self._lock:
            logger.info("Circuit breaker: manual reset to CLOSED")
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_at = None
            self._trial_in_flight = False

    @property
    def is_open(self) -> bool:
        """Check if circuit is OPEN."""
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        """Check if circuit is CLOSED."""
        return self.state == CircuitState.CLOSED

    @property
    def is_half_open(self) -> bool:
        """Check if circuit is HALF_OPEN."""
        return self.state == CircuitState.HALF_OPEN

    def get_state_info(self) -> dict:
        """
        Get current circuit breaker state information.

        Returns:
            Dictionary with state, failure count and threshold
        """
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "reset_timeout_seconds": self.timeout.total_seconds(),
        }
