"""
Conflict check result models.

These values are produced fresh for every query and never stored.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, List, Optional

from .session import LessonSession


class Dimension(Enum):
    """Axis along which conflicts are checked independently."""
    STUDENT = "student"
    TEACHER = "teacher"
    ROOM = "room"


@dataclass(frozen=True)
class ConflictingSession:
    """
    An existing session that overlaps the queried range.

    Attributes:
        session_id: Identifier of the overlapping session
        group_name: Display name of the group or lesson
        start_time: Start of the overlapping session
        end_time: End of the overlapping session
        teacher: Teacher id of the overlapping session
        classroom: Room of the overlapping session
        branch: Branch of the overlapping session
    """

    session_id: str
    group_name: Optional[str]
    start_time: time
    end_time: time
    teacher: Optional[str] = None
    classroom: Optional[str] = None
    branch: Optional[str] = None

    @classmethod
    def from_session(cls, session: LessonSession) -> 'ConflictingSession':
        """Summarise a stored session for display."""
        return cls(
            session_id=session.id,
            group_name=session.group_name,
            start_time=session.start_time,
            end_time=session.end_time,
            teacher=session.teacher_id,
            classroom=session.classroom,
            branch=session.branch,
        )

    @property
    def time_label(self) -> str:
        """Range formatted as "HH:MM-HH:MM"."""
        return f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "session_id": self.session_id,
            "group_name": self.group_name,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "teacher": self.teacher,
            "classroom": self.classroom,
            "branch": self.branch,
        }


@dataclass
class ConflictCheckResult:
    """
    Outcome of a single-dimension conflict check.

    Attributes:
        dimension: Dimension that was checked
        has_conflict: Whether any overlapping session was found
        conflicting_sessions: Overlapping sessions, ordered by start time
        skipped: True when the identifier for this dimension was not supplied
        revision: Store revision observed by the query (for If-Match writes)

    Examples:
        >>> result = ConflictCheckResult.clear(Dimension.ROOM)
        >>> result.has_conflict
        False
    """

    dimension: Dimension
    has_conflict: bool
    conflicting_sessions: List[ConflictingSession] = field(default_factory=list)
    skipped: bool = False
    revision: Optional[int] = None

    @classmethod
    def clear(
        cls,
        dimension: Dimension,
        skipped: bool = False,
        revision: Optional[int] = None
    ) -> 'ConflictCheckResult':
        """Result with no conflicts."""
        return cls(dimension=dimension, has_conflict=False, skipped=skipped, revision=revision)

    @classmethod
    def from_sessions(
        cls,
        dimension: Dimension,
        sessions: List[LessonSession],
        revision: Optional[int] = None
    ) -> 'ConflictCheckResult':
        """Build a result from the overlapping sessions."""
        ordered = sorted(sessions, key=lambda s: (s.start_time, s.id))
        return cls(
            dimension=dimension,
            has_conflict=bool(ordered),
            conflicting_sessions=[ConflictingSession.from_session(s) for s in ordered],
            revision=revision,
        )

    @property
    def conflict_count(self) -> int:
        """Number of distinct overlapping sessions."""
        return len({c.session_id for c in self.conflicting_sessions})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "dimension": self.dimension.value,
            "has_conflict": self.has_conflict,
            "skipped": self.skipped,
            "conflicting_sessions": [c.to_dict() for c in self.conflicting_sessions],
        }


@dataclass
class CompositeConflictResult:
    """
    Outcome of checking all applicable dimensions at once.

    Every dimension is reported, including those that were skipped for
    lack of an identifier, so a caller can show all conflict classes together.
    """

    student: ConflictCheckResult
    teacher: ConflictCheckResult
    room: ConflictCheckResult
    revision: Optional[int] = None

    @property
    def has_any_conflict(self) -> bool:
        """True if at least one dimension found an overlap."""
        return any(r.has_conflict for r in self.results)

    @property
    def results(self) -> List[ConflictCheckResult]:
        """Per-dimension results in student, teacher, room order."""
        return [self.student, self.teacher, self.room]

    @property
    def all_conflicts(self) -> List[ConflictingSession]:
        """Union of conflicting sessions across dimensions, without duplicates."""
        seen = set()
        union = []
        for result in self.results:
            for conflict in result.conflicting_sessions:
                if conflict.session_id not in seen:
                    seen.add(conflict.session_id)
                    union.append(conflict)
        return union

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "has_any_conflict": self.has_any_conflict,
            "student": self.student.to_dict(),
            "teacher": self.teacher.to_dict(),
            "room": self.room.to_dict(),
        }


@dataclass(frozen=True)
class AvailableTeacher:
    """
    A qualified teacher annotated with conflict status for a time slot.

    Attributes:
        teacher_id: Teacher identifier
        name: Display name
        has_conflict: Whether the teacher is busy in the slot
        conflict_count: Number of distinct overlapping sessions
    """

    teacher_id: str
    name: str
    has_conflict: bool
    conflict_count: int

    @property
    def sort_key(self) -> tuple:
        """Ranking key: free teachers first, then by name, then id."""
        return (self.conflict_count, self.name.casefold(), self.teacher_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "teacher_id": self.teacher_id,
            "name": self.name,
            "has_conflict": self.has_conflict,
            "conflict_count": self.conflict_count,
        }
