"""
Result<T> wrapper for per-item outcomes.

Batch operations (planning a series of sessions, importing rows) report
one Result per item instead of aborting on the first bad item.
"""

from dataclasses import dataclass
from typing import Optional, Generic, TypeVar, Callable
from enum import Enum

from ..errors import SchedulingError


T = TypeVar('T')
U = TypeVar('U')


class ResultStatus(Enum):
    """Status of a Result."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class Result(Generic[T]):
    """
    Success-or-failure wrapper.

    Attributes:
        status: Result status (SUCCESS or FAILURE)
        value: The value if successful (None if failure)
        error: The scheduling error that caused failure (None if success)
        message: Optional message describing the result

    Examples:
        >>> result = Result.success(report, "2025-03-10")
        >>> if result.is_success:
        ...     print(result.value.has_any_conflict)

        >>> result = Result.failure("Invalid range", InvalidRangeError("..."))
        >>> result.unwrap_or(None) is None
        True
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[Exception] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """Check if the result represents success."""
        return self.status == ResultStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if the result represents failure."""
        return self.status == ResultStatus.FAILURE

    @classmethod
    def success(cls, value: T, message: Optional[str] = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(status=ResultStatus.SUCCESS, value=value, message=message)

    @classmethod
    def failure(cls, message: str, error: Optional[Exception] = None) -> 'Result[T]':
        """Create a failure result."""
        return cls(status=ResultStatus.FAILURE, message=message, error=error)

    @classmethod
    def capture(cls, func: Callable[..., T], *args, label: Optional[str] = None, **kwargs) -> 'Result[T]':
        """
        Run func and wrap its outcome.

        Only SchedulingError is captured; anything else is a bug and propagates.

        Args:
            func: Callable to run
            *args: Positional arguments for func
            label: Message attached to the result
            **kwargs: Keyword arguments for func

        Returns:
            Success with func's return value, or failure with the error
        """
        try:
            return cls.success(func(*args, **kwargs), label)
        except SchedulingError as e:
            message = f"{label}: {e}" if label else str(e)
            return cls.failure(message, e)

    def unwrap(self) -> T:
        """
        Unwrap the result value.

        Raises:
            The captured error if there is one, ValueError otherwise
        """
        if self.is_failure:
            if self.error is not None:
                raise self.error
            raise ValueError(f"Cannot unwrap failure result: {self.message}")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Unwrap the result value or return a default."""
        return self.value if self.is_success else default

    def map(self, func: Callable[[T], U]) -> 'Result[U]':
        """
        Map a function over the success value.

        Examples:
            >>> Result.success(report).map(lambda r: r.has_any_conflict)
        """
        if self.is_failure:
            return Result.failure(self.message, self.error)
        return Result.capture(func, self.value, label=self.message)
