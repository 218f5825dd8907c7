"""
Session row validator.

Validates lesson session rows arriving from outside the engine (CSV
imports, JSON snapshots, foreign stores) before they are turned into
LessonSession objects.
"""

from typing import Any, Dict

from ..models.session import (
    LessonSession,
    SessionKind,
    SessionStatus,
    parse_time,
    split_ids,
)
from .validators import Validator, ValidationResult


class SessionRowValidator(Validator):
    """
    Validator for lesson session rows.

    Validates:
    - Required fields
    - Date and time formats
    - end_time after start_time
    - Status and kind values
    - Roster shape (individual lessons have at most one student)

    Examples:
        >>> validator = SessionRowValidator()
        >>> session = validator.to_session({
        ...     "id": "ls_1",
        ...     "lesson_date": "2025-03-10",
        ...     "start_time": "14:00",
        ...     "end_time": "15:00",
        ...     "teacher_id": "t_1",
        ...     "branch": "Kotelniki",
        ...     "classroom": "101",
        ... })
    """

    REQUIRED_FIELDS = [
        "id",
        "lesson_date",
        "start_time",
        "end_time",
        "teacher_id",
        "branch",
        "classroom",
    ]

    MAX_ID_LENGTH = 100
    MAX_NAME_LENGTH = 200

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        """
        Validate a session row.

        Args:
            data: Row dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(is_valid=True)

        for error in self.validate_required_fields(data, self.REQUIRED_FIELDS):
            result.add_error(error)

        if not result.is_valid:
            return result

        for name in ("id", "teacher_id"):
            error = self.validate_string_length(
                data[name], name, min_length=1, max_length=self.MAX_ID_LENGTH
            )
            if error:
                result.add_error(error)

        for name in ("branch", "classroom"):
            error = self.validate_string_length(
                data[name], name, min_length=1, max_length=self.MAX_NAME_LENGTH
            )
            if error:
                result.add_error(error)

        error = self.validate_date_format(data["lesson_date"], "lesson_date")
        if error:
            result.add_error(error)

        start_error = self.validate_time_format(data["start_time"], "start_time")
        end_error = self.validate_time_format(data["end_time"], "end_time")
        for error in (start_error, end_error):
            if error:
                result.add_error(error)

        if not start_error and not end_error:
            if parse_time(data["end_time"]) <= parse_time(data["start_time"]):
                result.add_error(
                    f"end_time {data['end_time']} must be after start_time {data['start_time']}"
                )

        status = data.get("status") or SessionStatus.SCHEDULED.value
        error = self.validate_choice(status, [s.value for s in SessionStatus], "status")
        if error:
            result.add_error(error)

        kind = data.get("kind") or SessionKind.GROUP.value
        error = self.validate_choice(kind, [k.value for k in SessionKind], "kind")
        if error:
            result.add_error(error)

        students = list(split_ids(data.get("student_ids")))
        if kind == SessionKind.INDIVIDUAL.value and len(students) > 1:
            result.add_error(
                f"Individual session {data['id']} lists {len(students)} students"
            )
        elif not students:
            result.add_warning(f"Session {data['id']} has no enrolled students")

        return result

    def to_session(self, data: Dict[str, Any]) -> LessonSession:
        """
        Validate a row and convert it.

        Raises:
            ValidationFailedError: If the row is invalid
        """
        self.validate(data).raise_if_invalid(f"Invalid session row {data.get('id')!r}")
        return LessonSession.from_dict(data)
