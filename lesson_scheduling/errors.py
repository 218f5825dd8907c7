"""
Error taxonomy for the scheduling engine.

All engine errors derive from SchedulingError so callers can catch
the whole family at one boundary. Validation errors are raised before
any store access; store failures surface as StoreUnavailableError and
are never retried by the engine.
"""

from typing import Optional, Any


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling engine."""
    pass


class InvalidRangeError(SchedulingError):
    """Raised when a time range is malformed (end <= start)."""
    pass


class InvalidTransitionError(SchedulingError):
    """
    Raised when a substitution status change is not in the transition table.

    Attributes:
        current: Status the substitution is in
        requested: Status the caller asked for
    """

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move substitution from '{current}' to '{requested}'"
        )


class NotFoundError(SchedulingError):
    """
    Raised when a referenced session or substitution does not exist.

    Attributes:
        entity: Entity kind ("session", "substitution", ...)
        entity_id: Identifier that was looked up
    """

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConflictingReferenceError(SchedulingError):
    """Raised when both or neither of the two session references are set."""
    pass


class SameTeacherError(SchedulingError):
    """Raised when the original and substitute teacher are the same person."""
    pass


class StoreUnavailableError(SchedulingError):
    """Raised when the backing store cannot be reached. Caller retries."""
    pass


class ValidationFailedError(SchedulingError):
    """
    Raised when an external row fails boundary validation.

    Attributes:
        validation: ValidationResult with the collected errors
    """

    def __init__(self, message: str, validation: Optional[Any] = None):
        self.validation = validation
        if validation is not None:
            message = f"{message}\n{validation.get_summary()}"
        super().__init__(message)


class ExclusionViolationError(SchedulingError):
    """
    Raised by a store that enforces the teacher/room exclusion constraint.

    Attributes:
        session_id: Session that was being inserted
        clashing_ids: Existing sessions that overlap it
    """

    def __init__(self, session_id: str, clashing_ids: list):
        self.session_id = session_id
        self.clashing_ids = list(clashing_ids)
        super().__init__(
            f"Session {session_id} overlaps existing sessions: "
            f"{', '.join(self.clashing_ids)}"
        )


class StaleRevisionError(SchedulingError):
    """Raised when the store changed between a conflict check and the write."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Schedule changed since it was checked "
            f"(expected revision {expected}, found {actual})"
        )


class ScheduleConflictError(SchedulingError):
    """
    Raised when a non-forced session creation finds conflicts.

    Attributes:
        result: CompositeConflictResult describing every conflict found
    """

    def __init__(self, result: Any):
        self.result = result
        super().__init__(
            f"Proposed session conflicts with "
            f"{len(result.all_conflicts)} existing session(s)"
        )


class DuplicateSubstitutionError(SchedulingError):
    """Raised when a session already has an active substitution for the date."""
    pass


class AuthorizationError(SchedulingError):
    """Raised when the acting user may not perform a substitution operation."""
    pass


class OperationCancelledError(SchedulingError):
    """Raised when the caller cancelled the operation or its deadline passed."""
    pass
