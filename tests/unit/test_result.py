"""
Unit tests for Result<T> pattern.
"""

import pytest

from lesson_scheduling.errors import InvalidRangeError, NotFoundError
from lesson_scheduling.models.result import Result, ResultStatus


class TestResult:
    """Test cases for Result class."""

    def test_success_creation(self):
        """Test creating a successful result."""
        result = Result.success(42, "Operation completed")

        assert result.is_success
        assert not result.is_failure
        assert result.status == ResultStatus.SUCCESS
        assert result.value == 42
        assert result.message == "Operation completed"
        assert result.error is None

    def test_failure_creation(self):
        """Test creating a failure result."""
        error = InvalidRangeError("End before start")
        result = Result.failure("Operation failed", error)

        assert result.is_failure
        assert not result.is_success
        assert result.status == ResultStatus.FAILURE
        assert result.value is None
        assert result.message == "Operation failed"
        assert result.error is error

    def test_success_without_message(self):
        """Test success without message."""
        result = Result.success(100)

        assert result.is_success
        assert result.value == 100
        assert result.message is None

    def test_unwrap_success(self):
        """Test unwrapping successful result."""
        assert Result.success("data").unwrap() == "data"

    def test_unwrap_failure_reraises_error(self):
        """Test unwrapping a failure re-raises the captured error."""
        result = Result.failure("missing", NotFoundError("session", "ls_9"))

        with pytest.raises(NotFoundError, match="ls_9"):
            result.unwrap()

    def test_unwrap_failure_without_error(self):
        """Test unwrapping a failure without an error object."""
        result = Result.failure("Error occurred")

        with pytest.raises(ValueError, match="Cannot unwrap failure result"):
            result.unwrap()

    def test_unwrap_or(self):
        """Test unwrap_or with success and failure."""
        assert Result.success(42).unwrap_or(0) == 42
        assert Result.failure("Error").unwrap_or(0) == 0

    def test_capture_success(self):
        """Test capture wraps the return value and label."""
        result = Result.capture(lambda a, b: a + b, 2, b=3, label="sum")

        assert result.is_success
        assert result.value == 5
        assert result.message == "sum"

    def test_capture_scheduling_error(self):
        """Test capture turns engine errors into failures."""
        def bad():
            raise InvalidRangeError("End time must be after start time")

        result = Result.capture(bad, label="2025-03-10")

        assert result.is_failure
        assert isinstance(result.error, InvalidRangeError)
        assert result.message.startswith("2025-03-10: ")

    def test_capture_lets_other_errors_propagate(self):
        """Test programming errors are not hidden inside a Result."""
        with pytest.raises(ZeroDivisionError):
            Result.capture(lambda: 1 / 0)

    def test_map_success(self):
        """Test mapping over successful result."""
        mapped = Result.success(5, "five").map(lambda x: x * 2)

        assert mapped.is_success
        assert mapped.value == 10
        assert mapped.message == "five"

    def test_map_failure(self):
        """Test mapping over failure returns the original failure."""
        error = InvalidRangeError("bad")
        mapped = Result.failure("Error", error).map(lambda x: x * 2)

        assert mapped.is_failure
        assert mapped.message == "Error"
        assert mapped.error is error

    def test_result_with_none_value(self):
        """Test result with None as valid value."""
        result = Result.success(None, "Completed with no value")

        assert result.is_success
        assert result.value is None
