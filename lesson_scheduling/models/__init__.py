"""
Scheduling data models.
"""

from .session import (
    LessonSession,
    SessionKind,
    SessionStatus,
    TimeRange,
    NON_BLOCKING_STATUSES,
    parse_date,
    parse_time,
    ranges_overlap,
)
from .conflict import (
    AvailableTeacher,
    CompositeConflictResult,
    ConflictCheckResult,
    ConflictingSession,
    Dimension,
)
from .substitution import (
    ALLOWED_TRANSITIONS,
    SessionRef,
    SubstitutionFilters,
    SubstitutionStatus,
    TeacherSubstitution,
    can_transition,
)
from .teacher import TeacherProfile
from .result import Result, ResultStatus

__all__ = [
    "LessonSession",
    "SessionKind",
    "SessionStatus",
    "TimeRange",
    "NON_BLOCKING_STATUSES",
    "parse_date",
    "parse_time",
    "ranges_overlap",
    "AvailableTeacher",
    "CompositeConflictResult",
    "ConflictCheckResult",
    "ConflictingSession",
    "Dimension",
    "ALLOWED_TRANSITIONS",
    "SessionRef",
    "SubstitutionFilters",
    "SubstitutionStatus",
    "TeacherSubstitution",
    "can_transition",
    "TeacherProfile",
    "Result",
    "ResultStatus",
]
