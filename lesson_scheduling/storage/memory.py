"""
In-memory implementations of the storage interfaces.

Used by the test suite and the command-line tool. Each store guards its
state with one lock held for the duration of a single call, which makes
every call atomic with respect to concurrent callers, the same guarantee
a relational store gives a single statement.
"""

import logging
import threading
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..errors import (
    DuplicateSubstitutionError,
    ExclusionViolationError,
    NotFoundError,
    StaleRevisionError,
    ValidationFailedError,
)
from ..models.session import LessonSession, SessionStatus
from ..models.substitution import SubstitutionFilters, TeacherSubstitution
from ..models.teacher import TeacherProfile
from .interfaces import (
    IdentityProvider,
    QualificationDirectory,
    SessionStore,
    SubstitutionStore,
)


logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):
    """
    Thread-safe session store.

    With enforce_exclusion=True the store behaves like a table with
    exclusion constraints on (teacher_id, date, time range) and
    (branch, classroom, date, time range): an overlapping insert is
    rejected atomically. With enforce_exclusion=False it is an
    unconstrained table and concurrent callers can double-book.

    Examples:
        >>> store = InMemorySessionStore([session_a, session_b])
        >>> store.find_sessions_for_teacher("t_1", date(2025, 3, 10))
        [session_a]
    """

    def __init__(self, sessions: Iterable[LessonSession] = (), enforce_exclusion: bool = True):
        """
        Initialize store.

        Args:
            sessions: Initial sessions, loaded without constraint checks
            enforce_exclusion: Reject overlapping teacher/room inserts
        """
        self.enforce_exclusion = enforce_exclusion
        self._lock = threading.Lock()
        self._sessions: Dict[str, LessonSession] = {}
        self._revisions: Dict[date, int] = defaultdict(int)

        for session in sessions:
            self._sessions[session.id] = session

        logger.debug(
            f"In-memory session store ready: {len(self._sessions)} sessions, "
            f"enforce_exclusion={enforce_exclusion}"
        )

    def get_session(self, session_id: str) -> Optional[LessonSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def find_sessions_for_student(self, student_id: str, lesson_date: date) -> List[LessonSession]:
        with self._lock:
            return [
                s for s in self._sessions.values()
                if s.lesson_date == lesson_date and s.has_student(student_id)
            ]

    def find_sessions_for_teacher(self, teacher_id: str, lesson_date: date) -> List[LessonSession]:
        with self._lock:
            return [
                s for s in self._sessions.values()
                if s.lesson_date == lesson_date and s.teacher_id == teacher_id
            ]

    def find_sessions_for_room(self, branch: str, classroom: str, lesson_date: date) -> List[LessonSession]:
        with self._lock:
            return [
                s for s in self._sessions.values()
                if s.lesson_date == lesson_date and s.in_room(branch, classroom)
            ]

    def insert_session(
        self,
        session: LessonSession,
        expected_revision: Optional[int] = None,
        allow_overlap: bool = False
    ) -> LessonSession:
        with self._lock:
            if session.id in self._sessions:
                raise ValidationFailedError(f"Session id already exists: {session.id}")

            current = self._revisions[session.lesson_date]
            if expected_revision is not None and expected_revision != current:
                raise StaleRevisionError(expected_revision, current)

            if self.enforce_exclusion and session.occupies_slot and not allow_overlap:
                clashing = self._clashing_ids(session)
                if clashing:
                    raise ExclusionViolationError(session.id, clashing)

            self._sessions[session.id] = session
            self._revisions[session.lesson_date] = current + 1

        logger.debug(f"Inserted session {session.id} ({session.time_range})")
        return session

    def update_session_status(self, session_id: str, status: SessionStatus) -> LessonSession:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is None:
                raise NotFoundError("session", session_id)

            updated = existing.with_status(status)
            self._sessions[session_id] = updated
            self._revisions[updated.lesson_date] += 1

        logger.debug(f"Session {session_id}: {existing.status.value} -> {status.value}")
        return updated

    def revision(self, lesson_date: date) -> int:
        with self._lock:
            return self._revisions[lesson_date]

    def all_sessions(self) -> List[LessonSession]:
        """Every stored session ordered by date, start time and id."""
        with self._lock:
            sessions = list(self._sessions.values())
        return sorted(sessions, key=lambda s: (s.lesson_date, s.start_time, s.id))

    def _clashing_ids(self, session: LessonSession) -> List[str]:
        """Ids of blocking sessions sharing teacher or room and overlapping. Caller holds the lock."""
        slot = session.time_range
        return sorted(
            s.id for s in self._sessions.values()
            if s.occupies_slot
            and s.overlaps(slot)
            and (s.teacher_id == session.teacher_id or self._shares_room(s, session))
        )

    @staticmethod
    def _shares_room(stored: LessonSession, session: LessonSession) -> bool:
        # an unassigned classroom never clashes
        if not session.branch or not session.classroom:
            return False
        return stored.in_room(session.branch, session.classroom)


class InMemorySubstitutionStore(SubstitutionStore):
    """
    Thread-safe substitution store.

    Enforces at most one active (non-cancelled) substitution per session
    and date, like a partial unique index would.
    """

    def __init__(self, substitutions: Iterable[TeacherSubstitution] = ()):
        self._lock = threading.Lock()
        self._items: Dict[str, TeacherSubstitution] = {s.id: s for s in substitutions}

    def add(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        with self._lock:
            if substitution.id in self._items:
                raise ValidationFailedError(f"Substitution id already exists: {substitution.id}")
            if substitution.is_active:
                active = self._active_for(substitution)
                if active is not None:
                    raise DuplicateSubstitutionError(
                        f"Session {substitution.session_ref.session_id} already has an active "
                        f"substitution on {substitution.substitution_date}: {active.id}"
                    )
            self._items[substitution.id] = substitution
        return substitution

    def get(self, substitution_id: str) -> Optional[TeacherSubstitution]:
        with self._lock:
            return self._items.get(substitution_id)

    def save(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        with self._lock:
            if substitution.id not in self._items:
                raise NotFoundError("substitution", substitution.id)
            self._items[substitution.id] = substitution
        return substitution

    def list(self, filters: SubstitutionFilters) -> List[TeacherSubstitution]:
        with self._lock:
            matching = [s for s in self._items.values() if filters.matches(s)]
        # newest date first; ties broken by creation time then id for stable output
        matching.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        matching.sort(key=lambda s: s.substitution_date, reverse=True)
        return matching

    def find_for_session(self, session_id: str, substitution_date: date) -> List[TeacherSubstitution]:
        with self._lock:
            return [
                s for s in self._items.values()
                if s.session_ref.session_id == session_id
                and s.substitution_date == substitution_date
            ]

    def delete(self, substitution_id: str) -> bool:
        with self._lock:
            return self._items.pop(substitution_id, None) is not None

    def _active_for(self, substitution: TeacherSubstitution) -> Optional[TeacherSubstitution]:
        """Existing active record for the same session and date. Caller holds the lock."""
        for existing in self._items.values():
            if (
                existing.is_active
                and existing.session_ref.session_id == substitution.session_ref.session_id
                and existing.substitution_date == substitution.substitution_date
            ):
                return existing
        return None


class InMemoryQualificationDirectory(QualificationDirectory):
    """Qualification lookup over a fixed list of teacher profiles."""

    def __init__(self, teachers: Iterable[TeacherProfile] = ()):
        self._teachers = list(teachers)

    def find_qualified_teachers(self, subject: str, branch: str) -> List[TeacherProfile]:
        return [t for t in self._teachers if t.teaches(subject, branch)]


class StaticIdentityProvider(IdentityProvider):
    """
    Identity provider with a fixed acting user.

    Examples:
        >>> identity = StaticIdentityProvider("manager_1", managers={"manager_1"})
        >>> identity.act_as("teacher_7")
        >>> identity.current_user_id()
        'teacher_7'
    """

    def __init__(self, user_id: str, managers: Iterable[str] = ()):
        self._user_id = user_id
        self._managers = set(managers)

    def act_as(self, user_id: str):
        """Switch the acting user."""
        self._user_id = user_id

    def current_user_id(self) -> str:
        return self._user_id

    def is_manager(self, user_id: str) -> bool:
        return user_id in self._managers
