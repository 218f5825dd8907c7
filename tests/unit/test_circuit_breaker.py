"""
Unit tests for Circuit Breaker pattern.
"""

import pytest
from datetime import timedelta

from lesson_scheduling.errors import StoreUnavailableError
from lesson_scheduling.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitBreakerOpenError
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def failing_func():
    raise StoreUnavailableError("connection refused")


def success_func():
    return "success"


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    def open_circuit(self, cb: CircuitBreaker, failures: int):
        for _ in range(failures):
            with pytest.raises(StoreUnavailableError):
                cb.call(failing_func)

    def test_initial_state_closed(self):
        """Test circuit breaker starts in CLOSED state."""
        cb = CircuitBreaker(failure_threshold=3)

        assert cb.state == CircuitState.CLOSED
        assert cb.is_closed
        assert not cb.is_open
        assert not cb.is_half_open
        assert cb.failure_count == 0

    def test_rejects_non_positive_threshold(self):
        """Test threshold must be positive."""
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)

    def test_successful_call(self):
        """Test successful function call passes arguments through."""
        cb = CircuitBreaker(failure_threshold=3)

        result = cb.call(lambda a, b=0: a + b, 2, b=3)

        assert result == 5
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    def test_failure_increments_count(self):
        """Test failure increments counter."""
        cb = CircuitBreaker(failure_threshold=3)

        self.open_circuit(cb, 1)

        assert cb.failure_count == 1
        assert cb.state == CircuitState.CLOSED

    def test_success_resets_count(self):
        """Test a success clears earlier failures."""
        cb = CircuitBreaker(failure_threshold=3)
        self.open_circuit(cb, 2)

        cb.call(success_func)

        assert cb.failure_count == 0

    def test_circuit_opens_after_threshold(self):
        """Test circuit opens after reaching failure threshold."""
        cb = CircuitBreaker(failure_threshold=3)

        self.open_circuit(cb, 3)

        assert cb.state == CircuitState.OPEN
        assert cb.is_open
        assert cb.failure_count == 3

    def test_open_circuit_blocks_calls(self, clock):
        """Test OPEN circuit fails fast without calling the store."""
        cb = CircuitBreaker(failure_threshold=2, clock=clock)
        self.open_circuit(cb, 2)
        calls = []

        with pytest.raises(CircuitBreakerOpenError):
            cb.call(lambda: calls.append(1))

        assert calls == []

    def test_open_error_is_store_unavailable(self, clock):
        """Test callers catching StoreUnavailableError also see open-circuit rejections."""
        cb = CircuitBreaker(failure_threshold=1, clock=clock)
        self.open_circuit(cb, 1)

        with pytest.raises(StoreUnavailableError):
            cb.call(success_func)

    def test_half_open_after_timeout(self, clock):
        """Test circuit lets a trial call through after the timeout."""
        cb = CircuitBreaker(failure_threshold=2, timeout=timedelta(seconds=30), clock=clock)
        self.open_circuit(cb, 2)

        clock.advance(29)
        with pytest.raises(CircuitBreakerOpenError):
            cb.call(success_func)

        clock.advance(1)
        result = cb.call(success_func)

        assert result == "success"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    def test_failure_in_half_open_reopens_circuit(self, clock):
        """Test failure in HALF_OPEN reopens circuit."""
        cb = CircuitBreaker(failure_threshold=2, timeout=timedelta(seconds=30), clock=clock)
        self.open_circuit(cb, 2)
        clock.advance(30)

        with pytest.raises(StoreUnavailableError):
            cb.call(failing_func)

        assert cb.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            cb.call(success_func)

    def test_half_open_allows_single_trial(self, clock):
        """Test a second caller is rejected while the trial call is running."""
        cb = CircuitBreaker(failure_threshold=2, timeout=timedelta(seconds=30), clock=clock)
        self.open_circuit(cb, 2)
        clock.advance(30)
        rejected = []

        def trial():
            assert cb.is_half_open
            with pytest.raises(CircuitBreakerOpenError):
                cb.call(success_func)
            rejected.append(True)
            return "trial"

        assert cb.call(trial) == "trial"
        assert rejected == [True]
        assert cb.is_closed
        assert cb.call(success_func) == "success"

    def test_uncounted_error_ends_trial(self, clock):
        """Test an unexpected error during the trial frees the slot for the next caller."""
        cb = CircuitBreaker(failure_threshold=2, timeout=timedelta(seconds=30), clock=clock)
        self.open_circuit(cb, 2)
        clock.advance(30)

        with pytest.raises(ValueError):
            cb.call(lambda: int("x"))

        assert cb.is_half_open
        assert cb.call(success_func) == "success"
        assert cb.is_closed

    def test_reset_circuit(self):
        """Test manual circuit reset."""
        cb = CircuitBreaker(failure_threshold=2)
        self.open_circuit(cb, 2)

        cb.reset()

        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0
        assert cb.call(success_func) == "success"

    def test_different_exception_not_counted(self):
        """Test exceptions other than the expected type are not counted."""
        cb = CircuitBreaker(failure_threshold=2)

        def other_error_func():
            raise ValueError("Different error")

        with pytest.raises(ValueError):
            cb.call(other_error_func)

        assert cb.failure_count == 0
        assert cb.state == CircuitState.CLOSED

    def test_get_state_info(self):
        """Test getting state information."""
        cb = CircuitBreaker(failure_threshold=5, timeout=timedelta(seconds=45))

        info = cb.get_state_info()

        assert info["state"] == "closed"
        assert info["failure_count"] == 0
        assert info["failure_threshold"] == 5
        assert info["reset_timeout_seconds"] == 45.0
