"""
Substitution request validator.

Checks a substitution request before anything touches the store:
- different original and substitute teachers (SameTeacherError)
- exactly one session reference (ConflictingReferenceError)
- required fields and field formats (ValidationFailedError)
"""

from typing import Any, Dict

from ..errors import ConflictingReferenceError, SameTeacherError
from .validators import Validator, ValidationResult


class SubstitutionRequestValidator(Validator):
    """
    Validator for substitution creation requests.

    Request keys: lesson_session_id, individual_lesson_session_id,
    original_teacher_id, substitute_teacher_id, substitution_date,
    created_by, reason (optional).
    """

    REQUIRED_FIELDS = [
        "original_teacher_id",
        "substitute_teacher_id",
        "substitution_date",
        "created_by",
    ]

    MAX_REASON_LENGTH = 1000

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        """
        Validate request fields.

        Args:
            data: Request dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(is_valid=True)

        for error in self.validate_required_fields(data, self.REQUIRED_FIELDS):
            result.add_error(error)

        if not result.is_valid:
            return result

        error = self.validate_date_format(data["substitution_date"], "substitution_date")
        if error:
            result.add_error(error)

        reason = data.get("reason")
        if reason:
            error = self.validate_string_length(
                reason, "reason", max_length=self.MAX_REASON_LENGTH
            )
            if error:
                result.add_error(error)
        else:
            result.add_warning("No reason given for substitution")

        return result

    def ensure_valid(self, data: Dict[str, Any]) -> ValidationResult:
        """
        Run every check, raising the most specific error first.

        Raises:
            SameTeacherError: If original and substitute teacher are equal
            ConflictingReferenceError: If both or neither session reference is set
            ValidationFailedError: If any other field is invalid

        Returns:
            The (valid) ValidationResult, which may carry warnings
        """
        original = data.get("original_teacher_id")
        if original is not None and original == data.get("substitute_teacher_id"):
            raise SameTeacherError(
                f"Teacher {original} cannot substitute for themselves"
            )

        group_ref = data.get("lesson_session_id")
        individual_ref = data.get("individual_lesson_session_id")
        if bool(group_ref) == bool(individual_ref):
            state = "both" if group_ref else "neither"
            raise ConflictingReferenceError(
                f"Exactly one of lesson_session_id and individual_lesson_session_id "
                f"must be set ({state} given)"
            )

        result = self.validate(data)
        result.raise_if_invalid("Invalid substitution request")
        return result
