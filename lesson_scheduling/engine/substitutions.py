"""
Substitution Workflow.

Tracks a teacher substitution through its lifecycle:

    pending --approve--> approved --complete--> completed
    pending|approved --cancel--> cancelled

completed and cancelled are terminal. Approving a substitution leaves
the session's teacher_id untouched: the session keeps its booked owner
and consumers that need the teaching teacher must join against active
substitutions (see effective_teacher_id).
"""

import logging
import uuid
from datetime import date, datetime
from typing import Callable, List, Optional, Union

from ..errors import (
    AuthorizationError,
    DuplicateSubstitutionError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from ..models.session import DateLike, LessonSession, parse_date
from ..models.substitution import (
    TEACHING_STATUSES,
    SessionRef,
    SubstitutionFilters,
    SubstitutionStatus,
    TeacherSubstitution,
    can_transition,
)
from ..storage.interfaces import IdentityProvider, SessionStore, SubstitutionStore
from ..validation.substitution_validator import SubstitutionRequestValidator
from .cancellation import CancellationToken, check_token


logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


class SubstitutionWorkflow:
    """
    Creates substitutions and moves them through the status table.

    Who may change a substitution:
    - approve: the creator, the original (owning) teacher, or a manager
    - complete: the substitute (who gives the lesson), the creator, or a manager
    - cancel: any of the creator, original teacher, substitute, or a manager
    - delete: the creator or a manager

    Examples:
        >>> workflow = SubstitutionWorkflow(sessions, substitutions, identity)
        >>> sub = workflow.create_substitution(
        ...     SessionRef.group("ls_1"), "t_1", "t_2", "2025-03-10",
        ...     created_by="manager_1", reason="Sick leave",
        ... )
        >>> workflow.approve(sub.id)
    """

    def __init__(
        self,
        session_store: SessionStore,
        substitution_store: SubstitutionStore,
        identity: IdentityProvider,
        validator: Optional[SubstitutionRequestValidator] = None,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize workflow.

        Args:
            session_store: Store holding the covered sessions
            substitution_store: Store holding substitution records
            identity: Source of the acting user
            validator: Request validator (default instance if omitted)
            id_factory: Generates substitution ids
            clock: Timestamp source
        """
        self.session_store = session_store
        self.substitution_store = substitution_store
        self.identity = identity
        self.validator = validator or SubstitutionRequestValidator()
        self._id_factory = id_factory
        self._clock = clock

    def create_substitution(
        self,
        session_ref: SessionRef,
        original_teacher_id: str,
        substitute_teacher_id: str,
        substitution_date: DateLike,
        created_by: str,
        reason: Optional[str] = None,
        observed_conflict_count: Optional[int] = None,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """
        Create a pending substitution.

        The substitute's calendar is not re-checked here; callers pick the
        substitute with AvailabilityFinder and may pass the conflict count
        they saw, which is kept as an audit note.

        Repeating a request for the same session, date and substitute
        returns the existing active record.

        Args:
            session_ref: Covered group or individual session
            original_teacher_id: Teacher who cannot teach
            substitute_teacher_id: Teacher who covers
            substitution_date: Date of the covered occurrence
            created_by: Acting user from external authentication
            reason: Why the substitution is needed
            observed_conflict_count: Substitute's conflict count seen by the caller
            token: Cancellation token

        Returns:
            The new (or already existing) substitution

        Raises:
            SameTeacherError: If original == substitute
            ConflictingReferenceError: If both or neither session reference is set
            ValidationFailedError: If other fields are invalid
            NotFoundError: If the referenced session does not exist
            DuplicateSubstitutionError: If another active substitution covers
                the session on that date
        """
        request = {
            "lesson_session_id": session_ref.lesson_session_id,
            "individual_lesson_session_id": session_ref.individual_lesson_session_id,
            "original_teacher_id": original_teacher_id,
            "substitute_teacher_id": substitute_teacher_id,
            "substitution_date": substitution_date,
            "created_by": created_by,
            "reason": reason,
        }
        validation = self.validator.ensure_valid(request)
        for warning in validation.warnings:
            logger.debug(f"Substitution request: {warning}")

        day = parse_date(substitution_date)

        check_token(token)
        session = self._get_session(session_ref)
        self._warn_on_mismatch(session, original_teacher_id, day)

        check_token(token)
        existing = self._active_substitution(session.id, day)
        if existing is not None:
            if (
                existing.substitute_teacher_id == substitute_teacher_id
                and existing.original_teacher_id == original_teacher_id
            ):
                logger.info(f"Substitution already exists for session {session.id} on {day}: {existing.id}")
                return existing
            raise DuplicateSubstitutionError(
                f"Session {session.id} already has an active substitution on {day} "
                f"({existing.id}, substitute {existing.substitute_teacher_id})"
            )

        now = self._clock()
        substitution = TeacherSubstitution(
            id=self._id_factory(),
            session_ref=session_ref,
            original_teacher_id=original_teacher_id,
            substitute_teacher_id=substitute_teacher_id,
            substitution_date=day,
            created_by=created_by,
            status=SubstitutionStatus.PENDING,
            reason=reason or None,
            notes=self._audit_note(observed_conflict_count),
            created_at=now,
            updated_at=now,
        )

        check_token(token)
        self.substitution_store.add(substitution)

        logger.info(
            f"Created substitution {substitution.id}: session {session.id} on {day}, "
            f"{original_teacher_id} -> {substitute_teacher_id}"
        )
        return substitution

    def update_status(
        self,
        substitution_id: str,
        new_status: Union[SubstitutionStatus, str],
        actor_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """
        Move a substitution to a new status.

        Args:
            substitution_id: Substitution to change
            new_status: Requested status
            actor_id: Acting user (default: identity provider's current user)
            token: Cancellation token

        Returns:
            The updated substitution

        Raises:
            ValidationFailedError: If new_status is not a known status
            NotFoundError: If the substitution does not exist
            AuthorizationError: If the actor may not make this change
            InvalidTransitionError: If the transition is not in the table
        """
        try:
            requested = SubstitutionStatus(new_status)
        except ValueError as e:
            raise ValidationFailedError(f"Unknown substitution status: {new_status!r}") from e

        check_token(token)
        substitution = self.get_substitution(substitution_id, token)
        actor = self._authorize(substitution, requested, actor_id)

        if not can_transition(substitution.status, requested):
            logger.warning(
                f"Rejected transition for substitution {substitution_id}: "
                f"{substitution.status.value} -> {requested.value} (by {actor})"
            )
            raise InvalidTransitionError(substitution.status.value, requested.value)

        updated = substitution.with_status(requested, self._clock())
        check_token(token)
        self.substitution_store.save(updated)

        logger.info(
            f"Substitution {substitution_id}: {substitution.status.value} -> "
            f"{requested.value} (by {actor})"
        )
        return updated

    def approve(
        self,
        substitution_id: str,
        actor_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """pending -> approved"""
        return self.update_status(substitution_id, SubstitutionStatus.APPROVED, actor_id, token)

    def complete(
        self,
        substitution_id: str,
        actor_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """approved -> completed (the substitute started the lesson)"""
        return self.update_status(substitution_id, SubstitutionStatus.COMPLETED, actor_id, token)

    def cancel(
        self,
        substitution_id: str,
        actor_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """pending|approved -> cancelled"""
        return self.update_status(substitution_id, SubstitutionStatus.CANCELLED, actor_id, token)

    def get_substitution(
        self,
        substitution_id: str,
        token: Optional[CancellationToken] = None
    ) -> TeacherSubstitution:
        """
        Fetch a substitution.

        Raises:
            NotFoundError: If it does not exist
        """
        check_token(token)
        substitution = self.substitution_store.get(substitution_id)
        if substitution is None:
            raise NotFoundError("substitution", substitution_id)
        return substitution

    def list_substitutions(
        self,
        filters: Optional[SubstitutionFilters] = None,
        token: Optional[CancellationToken] = None
    ) -> List[TeacherSubstitution]:
        """
        List substitutions.

        A teacher_id filter matches both the original and the substitute
        teacher, so a teacher sees the lessons they gave up and the
        lessons they cover.
        """
        check_token(token)
        return self.substitution_store.list(filters or SubstitutionFilters())

    def delete_substitution(
        self,
        substitution_id: str,
        actor_id: Optional[str] = None,
        token: Optional[CancellationToken] = None
    ):
        """
        Permanently delete a substitution entered by mistake.

        There is no undo.

        Raises:
            NotFoundError: If the substitution does not exist
            AuthorizationError: If the actor is neither creator nor manager
        """
        check_token(token)
        substitution = self.get_substitution(substitution_id, token)

        actor = actor_id or self.identity.current_user_id()
        if actor != substitution.created_by and not self.identity.is_manager(actor):
            raise AuthorizationError(
                f"User {actor} may not delete substitution {substitution_id}"
            )

        check_token(token)
        if not self.substitution_store.delete(substitution_id):
            raise NotFoundError("substitution", substitution_id)

        logger.warning(
            f"Deleted substitution {substitution_id} "
            f"(status {substitution.status.value}, by {actor})"
        )

    def effective_teacher_id(
        self,
        session_ref: SessionRef,
        substitution_date: DateLike,
        token: Optional[CancellationToken] = None
    ) -> str:
        """
        Teacher who actually teaches a session occurrence.

        Returns the substitute of an approved or completed substitution,
        otherwise the session's booked teacher.

        Raises:
            NotFoundError: If the session does not exist
        """
        day = parse_date(substitution_date)
        check_token(token)
        session = self._get_session(session_ref)

        check_token(token)
        teaching = [
            s for s in self.substitution_store.find_for_session(session.id, day)
            if s.status in TEACHING_STATUSES
        ]
        if not teaching:
            return session.teacher_id
        latest = max(teaching, key=lambda s: s.updated_at)
        return latest.substitute_teacher_id

    def _get_session(self, session_ref: SessionRef) -> LessonSession:
        session = self.session_store.get_session(session_ref.session_id)
        if session is None or session.kind != session_ref.kind:
            kind = session_ref.kind.value if session_ref.kind else "lesson"
            raise NotFoundError(f"{kind} session", session_ref.session_id)
        return session

    def _active_substitution(self, session_id: str, day: date) -> Optional[TeacherSubstitution]:
        for substitution in self.substitution_store.find_for_session(session_id, day):
            if substitution.is_active:
                return substitution
        return None

    def _authorize(
        self,
        substitution: TeacherSubstitution,
        requested: SubstitutionStatus,
        actor_id: Optional[str]
    ) -> str:
        actor = actor_id or self.identity.current_user_id()
        if self.identity.is_manager(actor):
            return actor

        allowed = {substitution.created_by}
        if requested == SubstitutionStatus.APPROVED:
            allowed.add(substitution.original_teacher_id)
        elif requested == SubstitutionStatus.COMPLETED:
            allowed.add(substitution.substitute_teacher_id)
        else:
            allowed.update((substitution.original_teacher_id, substitution.substitute_teacher_id))

        if actor not in allowed:
            raise AuthorizationError(
                f"User {actor} may not set substitution {substitution.id} to {requested.value}"
            )
        return actor

    @staticmethod
    def _warn_on_mismatch(session: LessonSession, original_teacher_id: str, day: date):
        if session.teacher_id != original_teacher_id:
            logger.warning(
                f"Session {session.id} is booked for {session.teacher_id}, "
                f"substitution names {original_teacher_id} as original teacher"
            )
        if session.lesson_date != day:
            logger.warning(
                f"Session {session.id} is on {session.lesson_date}, substitution date is {day}"
            )

    @staticmethod
    def _audit_note(observed_conflict_count: Optional[int]) -> Optional[str]:
        if observed_conflict_count is None:
            return None
        return f"Substitute had {observed_conflict_count} conflicting session(s) when chosen"
