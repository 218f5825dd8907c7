"""
Lesson session data models.

This module provides:
- TimeRange: a half-open [start, end) interval on one calendar date
- SessionStatus / SessionKind enums
- LessonSession: a scheduled group or individual lesson occurrence
- Parsing helpers for the date/time strings used by stores and CSV files
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from ..errors import InvalidRangeError


DateLike = Union[date, str]
TimeLike = Union[time, str]


class SessionStatus(Enum):
    """Lifecycle status of a lesson session."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FREE_SKIP = "free_skip"
    PAID_SKIP = "paid_skip"
    RESCHEDULED = "rescheduled"


class SessionKind(Enum):
    """Group lessons carry a roster; individual lessons have one student."""
    GROUP = "group"
    INDIVIDUAL = "individual"


# Skipped sessions keep their slot reserved; only cancellation frees it.
NON_BLOCKING_STATUSES: FrozenSet[SessionStatus] = frozenset({SessionStatus.CANCELLED})


def parse_date(value: DateLike) -> date:
    """
    Parse a calendar date.

    Args:
        value: date object or "YYYY-MM-DD" string

    Returns:
        date object

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()


def parse_time(value: TimeLike) -> time:
    """
    Parse a local time of day.

    Accepts "HH:MM" and "HH:MM:SS" (the format time columns come back in).

    Args:
        value: time object or string

    Returns:
        time object

    Raises:
        ValueError: If the string is not a valid time

    Examples:
        >>> parse_time("14:30")
        datetime.time(14, 30)
        >>> parse_time("09:00:00")
        datetime.time(9, 0)
    """
    if isinstance(value, time):
        return value
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time: {value!r} (expected HH:MM or HH:MM:SS)")


def ranges_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """
    Check whether two half-open intervals [start1, end1) and [start2, end2) overlap.

    Back-to-back intervals (end1 == start2) do not overlap, and a
    zero-length interval overlaps nothing.

    Examples:
        >>> ranges_overlap(time(9), time(10), time(10), time(11))
        False
        >>> ranges_overlap(time(14), time(15), time(14, 30), time(15, 30))
        True
    """
    return start1 < end2 and start2 < end1


@dataclass(frozen=True)
class TimeRange:
    """
    A half-open time interval on a single calendar date.

    Attributes:
        lesson_date: Calendar date
        start_time: Local start time (inclusive)
        end_time: Local end time (exclusive)

    Raises:
        InvalidRangeError: If end_time <= start_time

    Examples:
        >>> slot = TimeRange.from_strings("2025-03-10", "14:00", "15:00")
        >>> slot.overlaps(TimeRange.from_strings("2025-03-10", "15:00", "16:00"))
        False
    """

    lesson_date: date
    start_time: time
    end_time: time

    def __post_init__(self):
        """Reject empty and inverted ranges."""
        if self.end_time <= self.start_time:
            raise InvalidRangeError(
                f"End time {self.end_time.strftime('%H:%M')} must be after "
                f"start time {self.start_time.strftime('%H:%M')}"
            )

    @classmethod
    def from_strings(cls, lesson_date: DateLike, start: TimeLike, end: TimeLike) -> 'TimeRange':
        """
        Build a range from date/time strings or objects.

        Raises:
            InvalidRangeError: If a value cannot be parsed or end <= start
        """
        try:
            parsed = (parse_date(lesson_date), parse_time(start), parse_time(end))
        except ValueError as e:
            raise InvalidRangeError(str(e)) from e
        return cls(*parsed)

    @classmethod
    def from_duration(cls, lesson_date: DateLike, start: TimeLike, minutes: int) -> 'TimeRange':
        """
        Build a range from a start time and a duration.

        Args:
            lesson_date: Calendar date
            start: Start time
            minutes: Lesson length in minutes

        Returns:
            TimeRange ending `minutes` after start

        Raises:
            InvalidRangeError: If minutes <= 0 or the lesson would cross midnight

        Examples:
            >>> TimeRange.from_duration("2025-03-10", "18:40", 80).end_time
            datetime.time(20, 0)
        """
        if minutes <= 0:
            raise InvalidRangeError(f"Duration must be positive, got {minutes}")
        try:
            day = parse_date(lesson_date)
            start_time = parse_time(start)
        except ValueError as e:
            raise InvalidRangeError(str(e)) from e

        end = datetime.combine(day, start_time) + timedelta(minutes=minutes)
        if end.date() != day:
            raise InvalidRangeError(
                f"Lesson starting at {start_time.strftime('%H:%M')} "
                f"for {minutes} minutes crosses midnight"
            )
        return cls(day, start_time, end.time())

    def overlaps(self, other: 'TimeRange') -> bool:
        """Check overlap with another range (different dates never overlap)."""
        if self.lesson_date != other.lesson_date:
            return False
        return ranges_overlap(self.start_time, self.end_time, other.start_time, other.end_time)

    def to_dict(self) -> Dict[str, str]:
        """Convert to a dictionary of ISO strings."""
        return {
            "lesson_date": self.lesson_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
        }

    def __str__(self) -> str:
        return (
            f"{self.lesson_date.isoformat()} "
            f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"
        )


@dataclass
class LessonSession:
    """
    A scheduled lesson occurrence.

    Sessions are never deleted by the engine; they move through
    SessionStatus values instead.

    Attributes:
        id: Session identifier
        kind: Group or individual lesson
        lesson_date: Calendar date of the lesson
        start_time: Local start time
        end_time: Local end time
        teacher_id: Booked (owning) teacher
        branch: School branch
        classroom: Room within the branch
        status: Lifecycle status
        student_ids: Enrolled students (roster for groups, one id for individual)
        group_name: Display name of the group or lesson
        teacher_name: Display name of the teacher
        notes: Free-text notes

    Examples:
        >>> session = LessonSession(
        ...     id="ls_1",
        ...     kind=SessionKind.GROUP,
        ...     lesson_date=date(2025, 3, 10),
        ...     start_time=time(14, 0),
        ...     end_time=time(15, 0),
        ...     teacher_id="t_1",
        ...     branch="Kotelniki",
        ...     classroom="101",
        ...     student_ids=frozenset({"s_1", "s_2"}),
        ... )
    """

    id: str
    kind: SessionKind
    lesson_date: date
    start_time: time
    end_time: time
    teacher_id: str
    branch: str
    classroom: str
    status: SessionStatus = SessionStatus.SCHEDULED
    student_ids: FrozenSet[str] = field(default_factory=frozenset)
    group_name: Optional[str] = None
    teacher_name: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        """Normalise the roster to a frozenset."""
        if not isinstance(self.student_ids, frozenset):
            self.student_ids = frozenset(self.student_ids)

    @property
    def time_range(self) -> TimeRange:
        """The occupied [start, end) range."""
        return TimeRange(self.lesson_date, self.start_time, self.end_time)

    @property
    def occupies_slot(self) -> bool:
        """Whether the session reserves its teacher, room and students."""
        return self.status not in NON_BLOCKING_STATUSES

    def has_student(self, student_id: str) -> bool:
        """Check if a student is enrolled in this session."""
        return student_id in self.student_ids

    def in_room(self, branch: str, classroom: str) -> bool:
        """Check if the session takes place in the given room."""
        return self.branch == branch and self.classroom == classroom

    def overlaps(self, time_range: TimeRange) -> bool:
        """Check if the session's range overlaps `time_range`."""
        return self.time_range.overlaps(time_range)

    def with_status(self, status: SessionStatus) -> 'LessonSession':
        """Copy of this session with another status."""
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation (student ids sorted for stable output)
        """
        return {
            "id": self.id,
            "kind": self.kind.value,
            "lesson_date": self.lesson_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "teacher_id": self.teacher_id,
            "branch": self.branch,
            "classroom": self.classroom,
            "status": self.status.value,
            "student_ids": sorted(self.student_ids),
            "group_name": self.group_name,
            "teacher_name": self.teacher_name,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LessonSession':
        """
        Create instance from an already validated dictionary.

        Use SessionRowValidator on untrusted rows first.

        Args:
            data: Dictionary in the to_dict() shape. `student_ids` may be a
                list or a ";"-separated string.

        Returns:
            LessonSession instance
        """
        return cls(
            id=str(data["id"]),
            kind=SessionKind(data.get("kind") or SessionKind.GROUP.value),
            lesson_date=parse_date(data["lesson_date"]),
            start_time=parse_time(data["start_time"]),
            end_time=parse_time(data["end_time"]),
            teacher_id=str(data["teacher_id"]),
            branch=str(data["branch"]),
            classroom=str(data["classroom"]),
            status=SessionStatus(data.get("status") or SessionStatus.SCHEDULED.value),
            student_ids=frozenset(split_ids(data.get("student_ids"))),
            group_name=data.get("group_name") or None,
            teacher_name=data.get("teacher_name") or None,
            notes=data.get("notes") or None,
        )


def split_ids(value: Any) -> Iterable[str]:
    """
    Normalise an id list coming from JSON (list) or CSV (";"-separated string).

    Examples:
        >>> sorted(split_ids("s_1; s_2"))
        ['s_1', 's_2']
        >>> list(split_ids(None))
        []
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(";") if part.strip()]
    if isinstance(value, float):
        # pandas reads empty CSV cells as NaN
        return []
    return [str(item) for item in value]
