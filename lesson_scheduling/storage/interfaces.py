"""
Abstract interfaces for the scheduling engine's collaborators.

This module defines abstract base classes that enable dependency inversion
and make testing easier with in-memory fakes:
- SessionStore: lesson sessions (read by date/teacher/room/student, guarded insert)
- SubstitutionStore: teacher substitution records
- QualificationDirectory: which teachers teach a subject at a branch
- IdentityProvider: the acting user, supplied by external authentication
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ..models.session import LessonSession, SessionStatus
from ..models.substitution import SubstitutionFilters, TeacherSubstitution
from ..models.teacher import TeacherProfile


class SessionStore(ABC):
    """
    Abstract interface for lesson session storage.

    Read methods return every session on the date regardless of status;
    callers decide which statuses matter. Implementations raise
    StoreUnavailableError (or an OSError subclass, mapped by
    GuardedSessionStore) when the backend cannot be reached.
    """

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[LessonSession]:
        """
        Fetch one session by id.

        Args:
            session_id: Session identifier

        Returns:
            The session, or None if it does not exist
        """
        pass

    @abstractmethod
    def find_sessions_for_student(self, student_id: str, lesson_date: date) -> List[LessonSession]:
        """
        Sessions on a date in which the student is enrolled.

        Args:
            student_id: Student identifier
            lesson_date: Calendar date

        Returns:
            Group and individual sessions listing the student
        """
        pass

    @abstractmethod
    def find_sessions_for_teacher(self, teacher_id: str, lesson_date: date) -> List[LessonSession]:
        """
        Sessions on a date booked for the teacher.

        Args:
            teacher_id: Teacher identifier
            lesson_date: Calendar date

        Returns:
            Sessions whose teacher_id matches
        """
        pass

    @abstractmethod
    def find_sessions_for_room(self, branch: str, classroom: str, lesson_date: date) -> List[LessonSession]:
        """
        Sessions on a date in one room.

        Args:
            branch: School branch
            classroom: Room within the branch
            lesson_date: Calendar date

        Returns:
            Sessions whose (branch, classroom) matches
        """
        pass

    @abstractmethod
    def insert_session(
        self,
        session: LessonSession,
        expected_revision: Optional[int] = None,
        allow_overlap: bool = False
    ) -> LessonSession:
        """
        Insert a new session atomically.

        Args:
            session: Session to insert
            expected_revision: If set, reject the write unless the date's
                revision still equals this value (If-Match)
            allow_overlap: Administrative override of the exclusion constraint

        Returns:
            The stored session

        Raises:
            StaleRevisionError: If expected_revision no longer matches
            ExclusionViolationError: If the store enforces exclusion and the
                session overlaps a teacher or room booking
        """
        pass

    @abstractmethod
    def update_session_status(self, session_id: str, status: SessionStatus) -> LessonSession:
        """
        Move a session to another status.

        Raises:
            NotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    def revision(self, lesson_date: date) -> int:
        """
        Current write revision for a date.

        Every insert or status change touching the date increments it.
        """
        pass


class SubstitutionStore(ABC):
    """Abstract interface for substitution record storage."""

    @abstractmethod
    def add(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        """
        Persist a new substitution.

        Raises:
            DuplicateSubstitutionError: If the session already has an active
                substitution on the same date
        """
        pass

    @abstractmethod
    def get(self, substitution_id: str) -> Optional[TeacherSubstitution]:
        """Fetch a substitution by id, or None."""
        pass

    @abstractmethod
    def save(self, substitution: TeacherSubstitution) -> TeacherSubstitution:
        """
        Overwrite an existing substitution.

        Raises:
            NotFoundError: If the substitution does not exist
        """
        pass

    @abstractmethod
    def list(self, filters: SubstitutionFilters) -> List[TeacherSubstitution]:
        """Substitutions matching filters, newest date first."""
        pass

    @abstractmethod
    def find_for_session(self, session_id: str, substitution_date: date) -> List[TeacherSubstitution]:
        """All substitutions (any status) covering a session on a date."""
        pass

    @abstractmethod
    def delete(self, substitution_id: str) -> bool:
        """
        Hard-delete a substitution.

        Returns:
            True if a record was removed
        """
        pass


class QualificationDirectory(ABC):
    """Abstract lookup of teacher qualifications (subject x branch)."""

    @abstractmethod
    def find_qualified_teachers(self, subject: str, branch: str) -> List[TeacherProfile]:
        """
        Teachers qualified for subject who are assigned to branch.

        Returns:
            Possibly empty list of teacher profiles
        """
        pass


class IdentityProvider(ABC):
    """Abstract source of the acting user's identity and role."""

    @abstractmethod
    def current_user_id(self) -> str:
        """Identifier of the user performing the current request."""
        pass

    @abstractmethod
    def is_manager(self, user_id: str) -> bool:
        """Whether the user may manage any substitution."""
        pass
