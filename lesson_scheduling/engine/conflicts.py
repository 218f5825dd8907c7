"""
Conflict Checker.

Decides whether a proposed time slot collides with existing sessions
along three independent dimensions:
- student: sessions the student is enrolled in
- teacher: sessions booked for the teacher
- room: sessions in the same (branch, classroom)

Overlap uses half-open intervals, so back-to-back sessions do not
conflict. Cancelled sessions never block; skipped sessions
(free_skip/paid_skip) keep their slot.

The checker is advisory. It reads a snapshot of the store and cannot
stop a concurrent writer; SessionBooker pairs it with the store's
exclusion constraint or an If-Match revision.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import OperationCancelledError
from ..models.conflict import CompositeConflictResult, ConflictCheckResult, Dimension
from ..models.session import DateLike, LessonSession, TimeLike, TimeRange
from ..storage.interfaces import SessionStore
from .cancellation import CancellationToken, check_token


logger = logging.getLogger(__name__)


RoomKey = Tuple[str, str]
EntityId = Union[str, RoomKey, None]


def blocking_overlaps(
    sessions: Iterable[LessonSession],
    time_range: TimeRange,
    exclude_session_id: Optional[str] = None
) -> List[LessonSession]:
    """
    Filter sessions down to those that block time_range.

    Args:
        sessions: Candidate sessions
        time_range: Proposed slot
        exclude_session_id: Session being edited, never counted

    Returns:
        Distinct overlapping, non-cancelled sessions
    """
    found: Dict[str, LessonSession] = {}
    for session in sessions:
        if session.id == exclude_session_id or session.id in found:
            continue
        if session.occupies_slot and session.overlaps(time_range):
            found[session.id] = session
    return list(found.values())


def find_overlapping_sessions(sessions: Iterable[LessonSession]) -> List[str]:
    """
    Find sessions sharing a room with an overlapping session on the same day.

    Used to highlight double-booked rooms in a day or week listing.

    Args:
        sessions: Sessions to scan (any dates, any rooms)

    Returns:
        Sorted ids of every session involved in a room collision

    Examples:
        >>> find_overlapping_sessions([a_101_1400, b_101_1430, c_102_1400])
        ['a', 'b']
    """
    by_room: Dict[Tuple[date, str, str], List[LessonSession]] = defaultdict(list)
    for session in sessions:
        if session.occupies_slot and session.classroom:
            by_room[(session.lesson_date, session.branch, session.classroom)].append(session)

    clashing = set()
    for room_sessions in by_room.values():
        for first, second in combinations(room_sessions, 2):
            if first.overlaps(second.time_range):
                clashing.update((first.id, second.id))
    return sorted(clashing)


class ConflictChecker:
    """
    Checks proposed time slots against the session store.

    Holds no mutable state; every call re-queries the store.

    Examples:
        >>> checker = ConflictChecker(store)
        >>> result = checker.check_room_conflict(
        ...     "101", "Kotelniki", "2025-03-10", "14:30", "15:30"
        ... )
        >>> result.has_conflict
        True
    """

    def __init__(self, store: SessionStore, max_workers: int = 3):
        """
        Initialize checker.

        Args:
            store: Session store to query
            max_workers: Threads used by the composite check
        """
        self.store = store
        self.max_workers = max_workers

    def check_conflict(
        self,
        dimension: Union[Dimension, str],
        entity_id: EntityId,
        time_range: TimeRange,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> ConflictCheckResult:
        """
        Check one dimension.

        Args:
            dimension: student, teacher or room
            entity_id: Student id, teacher id, or (branch, classroom) for room
            time_range: Proposed slot
            exclude_session_id: Session to ignore (the one being edited)
            token: Cancellation token

        Returns:
            ConflictCheckResult; a skipped, conflict-free result when the
            identifier is missing
        """
        dimension = Dimension(dimension)
        if not self._has_identifier(dimension, entity_id):
            logger.debug(f"Skipping {dimension.value} check: no identifier supplied")
            return ConflictCheckResult.clear(dimension, skipped=True)

        check_token(token)
        revision = self.store.revision(time_range.lesson_date)

        check_token(token)
        candidates = self._fetch(dimension, entity_id, time_range.lesson_date)
        overlapping = blocking_overlaps(candidates, time_range, exclude_session_id)

        result = ConflictCheckResult.from_sessions(dimension, overlapping, revision=revision)
        if result.has_conflict:
            logger.info(
                f"{dimension.value} conflict for {entity_id} at {time_range}: "
                f"{', '.join(c.session_id for c in result.conflicting_sessions)}"
            )
        return result

    def check_student_conflict(
        self,
        student_id: Optional[str],
        lesson_date: DateLike,
        start: TimeLike,
        end: TimeLike,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> ConflictCheckResult:
        """Check sessions the student attends. Raises InvalidRangeError first if end <= start."""
        time_range = TimeRange.from_strings(lesson_date, start, end)
        return self.check_conflict(Dimension.STUDENT, student_id, time_range, exclude_session_id, token)

    def check_teacher_conflict(
        self,
        teacher_id: Optional[str],
        lesson_date: DateLike,
        start: TimeLike,
        end: TimeLike,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> ConflictCheckResult:
        """Check sessions booked for the teacher. Raises InvalidRangeError first if end <= start."""
        time_range = TimeRange.from_strings(lesson_date, start, end)
        return self.check_conflict(Dimension.TEACHER, teacher_id, time_range, exclude_session_id, token)

    def check_room_conflict(
        self,
        classroom: Optional[str],
        branch: Optional[str],
        lesson_date: DateLike,
        start: TimeLike,
        end: TimeLike,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> ConflictCheckResult:
        """Check sessions in the room. Raises InvalidRangeError first if end <= start."""
        time_range = TimeRange.from_strings(lesson_date, start, end)
        room = (branch, classroom) if branch and classroom else None
        return self.check_conflict(Dimension.ROOM, room, time_range, exclude_session_id, token)

    def check_all_conflicts(
        self,
        lesson_date: DateLike,
        start: TimeLike,
        end: TimeLike,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        classroom: Optional[str] = None,
        branch: Optional[str] = None,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> CompositeConflictResult:
        """
        Check every dimension for which an identifier was supplied.

        The three checks run concurrently and never short-circuit each
        other, so the caller sees every conflict class at once.

        Returns:
            CompositeConflictResult with one entry per dimension

        Raises:
            InvalidRangeError: If end <= start (before any query)
            OperationCancelledError: If the token fires while waiting
            StoreUnavailableError: If the store fails in any dimension
        """
        time_range = TimeRange.from_strings(lesson_date, start, end)
        students = [student_id] if student_id else []
        room = (branch, classroom) if branch and classroom else None
        return self._check_composite(time_range, students, teacher_id, room, exclude_session_id, token)

    def check_session(
        self,
        session: LessonSession,
        exclude_session_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> CompositeConflictResult:
        """
        Composite check for a whole session, including every student on its roster.

        Args:
            session: Proposed or edited session
            exclude_session_id: Defaults to nothing; pass session.id when re-validating an edit
            token: Cancellation token
        """
        room = (session.branch, session.classroom) if session.branch and session.classroom else None
        return self._check_composite(
            session.time_range,
            sorted(session.student_ids),
            session.teacher_id,
            room,
            exclude_session_id,
            token,
        )

    def _check_composite(
        self,
        time_range: TimeRange,
        student_ids: List[str],
        teacher_id: Optional[str],
        room: Optional[RoomKey],
        exclude_session_id: Optional[str],
        token: Optional[CancellationToken]
    ) -> CompositeConflictResult:
        check_token(token)

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                Dimension.STUDENT: executor.submit(
                    self._check_roster, student_ids, time_range, exclude_session_id, token
                ),
                Dimension.TEACHER: executor.submit(
                    self.check_conflict, Dimension.TEACHER, teacher_id, time_range, exclude_session_id, token
                ),
                Dimension.ROOM: executor.submit(
                    self.check_conflict, Dimension.ROOM, room, time_range, exclude_session_id, token
                ),
            }
            timeout = token.remaining() if token is not None else None
            _, pending = wait(futures.values(), timeout=timeout)
            if pending:
                # read-only work, safe to abandon; workers stop at their next token check
                token.cancel()
                raise OperationCancelledError(f"Conflict check for {time_range} timed out")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        # every dimension has finished; surface the first failure, if any
        results = {dimension: future.result() for dimension, future in futures.items()}

        revisions = [r.revision for r in results.values() if r.revision is not None]
        return CompositeConflictResult(
            student=results[Dimension.STUDENT],
            teacher=results[Dimension.TEACHER],
            room=results[Dimension.ROOM],
            revision=min(revisions) if revisions else None,
        )

    def _check_roster(
        self,
        student_ids: List[str],
        time_range: TimeRange,
        exclude_session_id: Optional[str],
        token: Optional[CancellationToken]
    ) -> ConflictCheckResult:
        """Student dimension over one or more students, merged into one result."""
        if not student_ids:
            return ConflictCheckResult.clear(Dimension.STUDENT, skipped=True)
        if len(student_ids) == 1:
            return self.check_conflict(Dimension.STUDENT, student_ids[0], time_range, exclude_session_id, token)

        check_token(token)
        revision = self.store.revision(time_range.lesson_date)
        candidates: List[LessonSession] = []
        for student_id in student_ids:
            check_token(token)
            candidates.extend(self.store.find_sessions_for_student(student_id, time_range.lesson_date))

        overlapping = blocking_overlaps(candidates, time_range, exclude_session_id)
        result = ConflictCheckResult.from_sessions(Dimension.STUDENT, overlapping, revision=revision)
        if result.has_conflict:
            logger.info(
                f"student conflict for roster of {len(student_ids)} at {time_range}: "
                f"{', '.join(c.session_id for c in result.conflicting_sessions)}"
            )
        return result

    def _fetch(self, dimension: Dimension, entity_id: EntityId, lesson_date: date) -> List[LessonSession]:
        if dimension == Dimension.STUDENT:
            return self.store.find_sessions_for_student(entity_id, lesson_date)
        if dimension == Dimension.TEACHER:
            return self.store.find_sessions_for_teacher(entity_id, lesson_date)
        branch, classroom = entity_id
        return self.store.find_sessions_for_room(branch, classroom, lesson_date)

    @staticmethod
    def _has_identifier(dimension: Dimension, entity_id: EntityId) -> bool:
        if dimension == Dimension.ROOM:
            return (
                isinstance(entity_id, tuple)
                and len(entity_id) == 2
                and all(entity_id)
            )
        return bool(entity_id)
