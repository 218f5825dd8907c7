"""
Availability Finder.

Lists the teachers qualified for a subject at a branch and annotates
each with whether, and how often, they are already booked in a slot.
Busy teachers are kept in the list so schedulers can still negotiate
with them; ordering puts free teachers first.
"""

import logging
from typing import Dict, List, Optional

from ..models.conflict import AvailableTeacher, Dimension
from ..models.session import DateLike, TimeLike, TimeRange
from ..models.teacher import TeacherProfile
from ..storage.interfaces import QualificationDirectory
from .cancellation import CancellationToken, check_token
from .conflicts import ConflictChecker


logger = logging.getLogger(__name__)


DEFAULT_LESSON_MINUTES = 80


class AvailabilityFinder:
    """
    Ranks substitute candidates for a time slot.

    Examples:
        >>> finder = AvailabilityFinder(checker, directory)
        >>> rows = finder.find_available_teachers("2025-03-10", "14:00", "English", "Okskaya")
        >>> [row.name for row in rows if not row.has_conflict]
        ['Anna Petrova', 'Oleg Smirnov']
    """

    def __init__(
        self,
        checker: ConflictChecker,
        directory: QualificationDirectory,
        default_duration: int = DEFAULT_LESSON_MINUTES
    ):
        """
        Initialize finder.

        Args:
            checker: Conflict checker used for the teacher dimension
            directory: Teacher qualification lookup
            default_duration: Slot length in minutes when no end time is given
        """
        self.checker = checker
        self.directory = directory
        self.default_duration = default_duration

    def find_available_teachers(
        self,
        lesson_date: DateLike,
        start_time: TimeLike,
        subject: str,
        branch: str,
        end_time: Optional[TimeLike] = None,
        token: Optional[CancellationToken] = None
    ) -> List[AvailableTeacher]:
        """
        Find qualified teachers and their conflict status for a slot.

        Args:
            lesson_date: Date of the lesson to cover
            start_time: Lesson start time
            subject: Subject the substitute must teach
            branch: Branch the substitute must be assigned to
            end_time: Lesson end time (default: start + default_duration)
            token: Cancellation token

        Returns:
            Every qualified teacher, ordered by conflict_count, then name

        Raises:
            InvalidRangeError: If the slot is malformed (before any query)
        """
        if end_time is None:
            slot = TimeRange.from_duration(lesson_date, start_time, self.default_duration)
        else:
            slot = TimeRange.from_strings(lesson_date, start_time, end_time)

        check_token(token)
        teachers = self._unique(self.directory.find_qualified_teachers(subject, branch))
        if not teachers:
            logger.info(f"No teachers qualified for {subject} at {branch}")
            return []

        rows = []
        for teacher in teachers:
            result = self.checker.check_conflict(
                Dimension.TEACHER, teacher.teacher_id, slot, token=token
            )
            rows.append(AvailableTeacher(
                teacher_id=teacher.teacher_id,
                name=teacher.full_name,
                has_conflict=result.has_conflict,
                conflict_count=result.conflict_count,
            ))

        rows.sort(key=lambda row: row.sort_key)

        free = sum(1 for row in rows if not row.has_conflict)
        logger.info(
            f"Availability for {subject} at {branch} {slot}: "
            f"{free} free of {len(rows)} qualified"
        )
        return rows

    @staticmethod
    def _unique(teachers: List[TeacherProfile]) -> List[TeacherProfile]:
        """Drop duplicate profiles returned by the directory, keeping the first."""
        seen: Dict[str, TeacherProfile] = {}
        for teacher in teachers:
            seen.setdefault(teacher.teacher_id, teacher)
        return list(seen.values())
