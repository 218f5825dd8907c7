"""
Session booking with a concurrency guard.

The Conflict Checker only reads, so two callers can both see a free
slot and both insert. SessionBooker makes the protection explicit:

- EXCLUSION_CONSTRAINT: the store rejects overlapping teacher/room
  inserts atomically (ExclusionViolationError); the conflict check is a
  pre-flight hint for the user.
- OPTIMISTIC_REVISION: the revision observed by the conflict check is
  sent with the insert (If-Match); any write to that date in between
  makes the insert fail with StaleRevisionError.

With EXCLUSION_CONSTRAINT over a store that does not enforce exclusion,
nothing prevents a double booking.
"""

import logging
from dataclasses import replace
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import InvalidRangeError, ScheduleConflictError
from ..models.conflict import CompositeConflictResult
from ..models.result import Result
from ..models.session import DateLike, LessonSession, parse_date
from ..storage.interfaces import SessionStore
from .cancellation import CancellationToken, check_token
from .conflicts import ConflictChecker


logger = logging.getLogger(__name__)


class ConcurrencyGuard(Enum):
    """How a booking is protected against concurrent double-booking."""
    EXCLUSION_CONSTRAINT = "exclusion_constraint"
    OPTIMISTIC_REVISION = "optimistic_revision"


MAX_SERIES_DAYS = 366


class SessionBooker:
    """
    Creates sessions after a conflict check.

    Examples:
        >>> booker = SessionBooker(store, guard=ConcurrencyGuard.OPTIMISTIC_REVISION)
        >>> booker.create_session(session)
        >>> booker.create_session(clashing, force=True)  # administrative override
    """

    def __init__(
        self,
        store: SessionStore,
        checker: Optional[ConflictChecker] = None,
        guard: ConcurrencyGuard = ConcurrencyGuard.EXCLUSION_CONSTRAINT
    ):
        """
        Initialize booker.

        Args:
            store: Session store to write to
            checker: Conflict checker (one over `store` if omitted)
            guard: Concurrency protection strategy
        """
        self.store = store
        self.checker = checker or ConflictChecker(store)
        self.guard = guard

    def create_session(
        self,
        session: LessonSession,
        force: bool = False,
        if_match: Optional[int] = None,
        token: Optional[CancellationToken] = None
    ) -> LessonSession:
        """
        Check a new session and insert it.

        Args:
            session: Session to create
            force: Administrative override; insert despite conflicts
            if_match: Revision from an earlier check shown to the user.
                Under OPTIMISTIC_REVISION the revision of this call's own
                check is used when omitted.
            token: Cancellation token

        Returns:
            The stored session

        Raises:
            ScheduleConflictError: If conflicts exist and force is False
            StaleRevisionError: If the date changed since the checked revision
            ExclusionViolationError: If the store's constraint rejects the insert
        """
        report = self.checker.check_session(session, token=token)

        if report.has_any_conflict:
            if not force:
                logger.info(
                    f"Session {session.id} not created: "
                    f"{len(report.all_conflicts)} conflict(s) at {session.time_range}"
                )
                raise ScheduleConflictError(report)
            logger.warning(
                f"Creating session {session.id} despite "
                f"{len(report.all_conflicts)} conflict(s) (override)"
            )

        expected = if_match
        if expected is None and self.guard == ConcurrencyGuard.OPTIMISTIC_REVISION:
            expected = report.revision

        check_token(token)
        stored = self.store.insert_session(session, expected_revision=expected, allow_overlap=force)
        logger.info(f"Created session {stored.id} at {stored.time_range}")
        return stored

    def plan_sessions(
        self,
        template: LessonSession,
        start_date: DateLike,
        end_date: DateLike,
        token: Optional[CancellationToken] = None
    ) -> List[Tuple[LessonSession, Result[CompositeConflictResult]]]:
        """
        Check a daily series of sessions without writing anything.

        Args:
            template: Session whose times, teacher, room and roster are repeated
            start_date: First date (inclusive)
            end_date: Last date (inclusive)
            token: Cancellation token

        Returns:
            (candidate session, Result with its conflict report) per date

        Raises:
            InvalidRangeError: If end_date is before start_date or the
                series is longer than a year
        """
        candidates = self._expand(template, start_date, end_date)
        plan = []
        for candidate in candidates:
            check_token(token)
            result = Result.capture(
                self.checker.check_session,
                candidate,
                token=token,
                label=candidate.lesson_date.isoformat(),
            )
            plan.append((candidate, result))

        conflicted = sum(1 for _, r in plan if r.is_failure or r.value.has_any_conflict)
        logger.info(
            f"Planned {len(plan)} session(s) from {template.id}: {conflicted} with conflicts"
        )
        return plan

    def book_series(
        self,
        template: LessonSession,
        start_date: DateLike,
        end_date: DateLike,
        force: bool = False,
        token: Optional[CancellationToken] = None
    ) -> List[Result[LessonSession]]:
        """
        Create one session per date; a failing date does not stop the others.

        Returns:
            Result per date (failure carries the ScheduleConflictError,
            ExclusionViolationError, ... for that date)
        """
        results = []
        for candidate in self._expand(template, start_date, end_date):
            check_token(token)
            results.append(Result.capture(
                self.create_session,
                candidate,
                force=force,
                token=token,
                label=candidate.lesson_date.isoformat(),
            ))
        return results

    @staticmethod
    def _expand(template: LessonSession, start_date: DateLike, end_date: DateLike) -> List[LessonSession]:
        first = parse_date(start_date)
        last = parse_date(end_date)
        if last < first:
            raise InvalidRangeError(f"Series end {last} is before start {first}")
        days = (last - first).days + 1
        if days > MAX_SERIES_DAYS:
            raise InvalidRangeError(f"Series of {days} days exceeds {MAX_SERIES_DAYS}")

        return [
            replace(template, id=_series_id(template.id, day), lesson_date=day)
            for day in (first + timedelta(days=offset) for offset in range(days))
        ]


def _series_id(base_id: str, day: date) -> str:
    return f"{base_id}-{day.strftime('%Y%m%d')}"
