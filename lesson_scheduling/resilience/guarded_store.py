"""
Store guards.

Wrap any SessionStore, SubstitutionStore or QualificationDirectory so that:
- transport failures (OSError, including ConnectionError and TimeoutError)
  surface as StoreUnavailableError
- repeated failures open a circuit breaker and later calls fail fast

Domain errors raised by a store (StaleRevisionError,
ExclusionViolationError, NotFoundError, DuplicateSubstitutionError) pass
through untouched and do not count as failures.
"""

import logging
from datetime import date
from typing import Any, Callable, List, Optional

from ..errors import StoreUnavailableError
from ..models.session import LessonSession, SessionStatus
from ..models.substitution import SubstitutionFilters, TeacherSubstitution
from ..models.teacher import TeacherProfile
from ..storage.interfaces import QualificationDirectory, SessionStore, SubstitutionStore
from .circuit_breaker import CircuitBreaker


logger = logging.getLogger(__name__)


class _Guard:
    """Error mapping and circuit breaker shared by the store guards."""

    store_name = "store"

    def __init__(self, inner: Any, breaker: Optional[CircuitBreaker] = None):
        """
        Initialize guard.

        Args:
            inner: Store being protected
            breaker: Circuit breaker (a default one is created if omitted)
        """
        self.inner = inner
        self.breaker = breaker or CircuitBreaker()

    def _call(self, func: Callable, *args, **kwargs):
        return self.breaker.call(self._translate, func, *args, **kwargs)

    def _translate(self, func: Callable, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OSError as e:
            logger.error(f"{self.store_name} call {getattr(func, '__name__', func)} failed: {e}")
            raise StoreUnavailableError(f"{self.store_name} unavailable: {e}") from e


class GuardedSessionStore(_Guard, SessionStore):
    """
    SessionStore decorator adding error mapping and a circuit breaker.

    Examples:
        >>> store = GuardedSessionStore(PostgresSessionStore(dsn), CircuitBreaker(5))
        >>> store.find_sessions_for_room("Kotelniki", "101", day)
    """

    store_name = "Session store"

    def get_session(self, session_id: str) -> Optional[LessonSession]:
        return self._call(self.inner.get_session, session_id)

    def find_sessions_for_student(self, student_id: str, lesson_date: date) -> List[LessonSession]:
        return self._call(self.inner.find_sessions_for_student, student_id, lesson_date)

    def find_sessions_for_teacher(self, teacher_id: str, lesson_date: date) -> List[LessonSession]:
        return self._call(self.inner.find_sessions_for_teacher, teacher_id, lesson_date)

    def find_sessions_for_room(self, branch: str, classroom: str, lesson_date: date) -> List[LessonSession]:
        return self._call(self.inner.find_sessions_for_room, branch, classroom, lesson_date)

    def insert_session(
        self,
        session: LessonSession,
        expected_revision: Optional[int] = None,
        allow_overlap: bool = False
    ) -> LessonSession:
        return self._call(
            self.inner.insert_session,
            session,
            expected_revision=expected_revision,
            allow_overlap=allow_overlap,
        )

    def update_session_status(self, session_id: str, status: SessionStatus) -> LessonSession:
        return self._call(self.inner.update_session_status, session_id, status)

    def revision(self, lesson_date: date) -> int:
        return self._call(self.inner.revision, lesson_date)


class GuardedSubstitutionStore(_Guard, SubstitutionStore):
    """SubstitutionStore decorator adding error mapping and a circuit breaker."""

    store_name = "Substitution store"

    def add(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        return self._call(self.inner.add, substitution)

    def get(self, substitution_id: str) -> Optional[TeacherSubstitution]:
        return self._call(self.inner.get, substitution_id)

    def save(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        return self._call(self.inner.save, substitution)

    def list(self, filters: SubstitutionFilters) -> List[TeacherSubstitution]:
        return self._call(self.inner.list, filters)

    def find_for_session(self, session_id: str, substitution_date: date) -> List[TeacherSubstitution]:
        return self._call(self.inner.find_for_session, session_id, substitution_date)

    def delete(self, substitution_id: str) -> bool:
        return self._call(self.inner.delete, substitution_id)


class GuardedQualificationDirectory(_Guard, QualificationDirectory):
    """QualificationDirectory decorator adding error mapping and a circuit breaker."""

    store_name = "Qualification directory"

    def find_qualified_teachers(self, subject: str, branch: str) -> List[TeacherProfile]:
        return self._call(self.inner.find_qualified_teachers, subject, branch)
