"""
Cooperative cancellation for engine operations.

Operations check the token before every store call. A token with a
timeout counts as cancelled once its deadline passes.
"""

import threading
import time
from typing import Optional

from ..errors import OperationCancelledError


class CancellationToken:
    """
    Caller-owned cancellation flag with an optional deadline.

    Examples:
        >>> token = CancellationToken(timeout=2.0)
        >>> checker.check_teacher_conflict("t_1", slot, token=token)

        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        OperationCancelledError: Operation cancelled
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize token.

        Args:
            timeout: Seconds until the token expires (None for no deadline)
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self):
        """Request cancellation."""
        self._event.set()

    @property
    def expired(self) -> bool:
        """True once the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        """True if cancel() was called or the deadline passed."""
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (None without a deadline)."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self):
        """
        Raise if the operation should stop.

        Raises:
            OperationCancelledError: If cancelled or timed out
        """
        if self._event.is_set():
            raise OperationCancelledError("Operation cancelled")
        if self.expired:
            raise OperationCancelledError("Operation timed out")


def check_token(token: Optional[CancellationToken]):
    """Raise if a token was supplied and is cancelled."""
    if token is not None:
        token.raise_if_cancelled()
