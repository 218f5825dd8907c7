"""
Teacher substitution data models.

This module provides:
- SubstitutionStatus and the allowed transition table
- SessionRef: reference to exactly one group or individual session
- TeacherSubstitution: the persisted substitution record
- SubstitutionFilters for list queries
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .session import SessionKind, parse_date


class SubstitutionStatus(Enum):
    """Substitution workflow states."""
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: Dict[SubstitutionStatus, FrozenSet[SubstitutionStatus]] = {
    SubstitutionStatus.PENDING: frozenset({
        SubstitutionStatus.APPROVED,
        SubstitutionStatus.CANCELLED,
    }),
    SubstitutionStatus.APPROVED: frozenset({
        SubstitutionStatus.COMPLETED,
        SubstitutionStatus.CANCELLED,
    }),
    SubstitutionStatus.COMPLETED: frozenset(),
    SubstitutionStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Statuses that count towards "one active substitution per session and date"
ACTIVE_STATUSES = frozenset({
    SubstitutionStatus.PENDING,
    SubstitutionStatus.APPROVED,
    SubstitutionStatus.COMPLETED,
})

# Statuses in which the substitute actually teaches the occurrence
TEACHING_STATUSES = frozenset({
    SubstitutionStatus.APPROVED,
    SubstitutionStatus.COMPLETED,
})


def can_transition(current: SubstitutionStatus, requested: SubstitutionStatus) -> bool:
    """Check a transition against the table. Self-transitions are never allowed."""
    return requested in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class SessionRef:
    """
    Reference to the session a substitution covers.

    Exactly one of the two fields must be set; the workflow rejects
    anything else with ConflictingReferenceError.

    Examples:
        >>> SessionRef.group("ls_1").session_id
        'ls_1'
    """

    lesson_session_id: Optional[str] = None
    individual_lesson_session_id: Optional[str] = None

    @classmethod
    def group(cls, session_id: str) -> 'SessionRef':
        """Reference to a group lesson session."""
        return cls(lesson_session_id=session_id)

    @classmethod
    def individual(cls, session_id: str) -> 'SessionRef':
        """Reference to an individual lesson session."""
        return cls(individual_lesson_session_id=session_id)

    @property
    def is_exclusive(self) -> bool:
        """True when exactly one reference is set."""
        return bool(self.lesson_session_id) != bool(self.individual_lesson_session_id)

    @property
    def session_id(self) -> Optional[str]:
        """The referenced session id (None unless exclusive)."""
        if not self.is_exclusive:
            return None
        return self.lesson_session_id or self.individual_lesson_session_id

    @property
    def kind(self) -> Optional[SessionKind]:
        """Kind of the referenced session."""
        if not self.is_exclusive:
            return None
        return SessionKind.GROUP if self.lesson_session_id else SessionKind.INDIVIDUAL


@dataclass
class TeacherSubstitution:
    """
    A record designating another teacher for one session occurrence.

    Approving a substitution does not change the session's teacher_id;
    this record is the source of truth for who teaches the occurrence.

    Attributes:
        id: Substitution identifier
        session_ref: Covered session
        original_teacher_id: Teacher who cannot teach
        substitute_teacher_id: Teacher who covers
        substitution_date: Date of the covered occurrence
        created_by: User who created the record
        status: Workflow state
        reason: Why the substitution is needed
        notes: Audit notes (e.g. conflicts observed at creation)
        created_at: Creation timestamp
        updated_at: Last status change timestamp
    """

    id: str
    session_ref: SessionRef
    original_teacher_id: str
    substitute_teacher_id: str
    substitution_date: date
    created_by: str
    status: SubstitutionStatus = SubstitutionStatus.PENDING
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        """Not cancelled."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        """No further transitions possible."""
        return self.status in TERMINAL_STATUSES

    def involves_teacher(self, teacher_id: str) -> bool:
        """True for the original and the substitute teacher."""
        return teacher_id in (self.original_teacher_id, self.substitute_teacher_id)

    def with_status(self, status: SubstitutionStatus, at: Optional[datetime] = None) -> 'TeacherSubstitution':
        """Copy with a new status and updated_at."""
        return replace(self, status=status, updated_at=at or datetime.now())

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format (flat row shape).

        Returns:
            Dictionary with both session reference columns
        """
        return {
            "id": self.id,
            "lesson_session_id": self.session_ref.lesson_session_id,
            "individual_lesson_session_id": self.session_ref.individual_lesson_session_id,
            "original_teacher_id": self.original_teacher_id,
            "substitute_teacher_id": self.substitute_teacher_id,
            "substitution_date": self.substitution_date.isoformat(),
            "reason": self.reason,
            "status": self.status.value,
            "created_by": self.created_by,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class SubstitutionFilters:
    """
    Filters for listing substitutions. Unset fields match everything.

    `teacher_id` matches the original or the substitute teacher.
    """

    teacher_id: Optional[str] = None
    substitution_date: Optional[date] = None
    status: Optional[SubstitutionStatus] = None

    def __post_init__(self):
        """Accept strings for date and status."""
        if isinstance(self.substitution_date, str):
            self.substitution_date = parse_date(self.substitution_date)
        if isinstance(self.status, str):
            self.status = SubstitutionStatus(self.status)

    def matches(self, substitution: TeacherSubstitution) -> bool:
        """Check if a substitution passes every set filter."""
        if self.teacher_id and not substitution.involves_teacher(self.teacher_id):
            return False
        if self.substitution_date and substitution.substitution_date != self.substitution_date:
            return False
        if self.status and substitution.status != self.status:
            return False
        return True
