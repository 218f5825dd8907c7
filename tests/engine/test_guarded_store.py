"""
Tests for the store guards.
"""

from datetime import date, timedelta
from unittest.mock import Mock

import pytest

from lesson_scheduling.engine.availability import AvailabilityFinder
from lesson_scheduling.engine.conflicts import ConflictChecker
from lesson_scheduling.engine.substitutions import SubstitutionWorkflow
from lesson_scheduling.errors import (
    DuplicateSubstitutionError,
    NotFoundError,
    StaleRevisionError,
    StoreUnavailableError,
)
from lesson_scheduling.models.session import SessionStatus
from lesson_scheduling.models.substitution import SubstitutionFilters
from lesson_scheduling.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from lesson_scheduling.resilience.guarded_store import (
    GuardedQualificationDirectory,
    GuardedSessionStore,
    GuardedSubstitutionStore,
)
from lesson_scheduling.storage.interfaces import QualificationDirectory, SessionStore, SubstitutionStore
from lesson_scheduling.storage.memory import InMemorySessionStore, StaticIdentityProvider


DAY = date(2025, 3, 10)


@pytest.fixture
def inner():
    return Mock(spec=SessionStore)


@pytest.fixture
def breaker():
    return CircuitBreaker(failure_threshold=2, timeout=timedelta(seconds=30))


class TestGuardedSessionStore:
    """Test cases for error mapping and fail-fast behaviour."""

    def test_delegates_every_call(self, inner, make_session):
        """Test calls reach the wrapped store unchanged."""
        session = make_session("ls_1", "14:00", "15:00")
        inner.get_session.return_value = session
        inner.find_sessions_for_student.return_value = []
        inner.find_sessions_for_teacher.return_value = [session]
        inner.find_sessions_for_room.return_value = [session]
        inner.insert_session.return_value = session
        inner.update_session_status.return_value = session
        inner.revision.return_value = 4
        store = GuardedSessionStore(inner)

        assert store.get_session("ls_1") == session
        assert store.find_sessions_for_student("s_1", DAY) == []
        assert store.find_sessions_for_teacher("t_1", DAY) == [session]
        assert store.find_sessions_for_room("Kotelniki", "101", DAY) == [session]
        assert store.insert_session(session, expected_revision=3) == session
        assert store.update_session_status("ls_1", SessionStatus.COMPLETED) == session
        assert store.revision(DAY) == 4

        inner.insert_session.assert_called_once_with(session, expected_revision=3, allow_overlap=False)
        inner.find_sessions_for_room.assert_called_once_with("Kotelniki", "101", DAY)

    @pytest.mark.parametrize("error", [ConnectionError("reset"), TimeoutError("slow"), OSError("io")])
    def test_transport_errors_mapped(self, inner, error):
        """Test transport failures surface as StoreUnavailableError."""
        inner.find_sessions_for_teacher.side_effect = error
        store = GuardedSessionStore(inner)

        with pytest.raises(StoreUnavailableError) as exc_info:
            store.find_sessions_for_teacher("t_1", DAY)

        assert exc_info.value.__cause__ is error

    def test_domain_errors_pass_through(self, inner, breaker, make_session):
        """Test store domain errors are neither mapped nor counted."""
        inner.insert_session.side_effect = StaleRevisionError(0, 1)
        inner.update_session_status.side_effect = NotFoundError("session", "ls_9")
        store = GuardedSessionStore(inner, breaker)

        for _ in range(3):
            with pytest.raises(StaleRevisionError):
                store.insert_session(make_session("ls_1", "14:00", "15:00"), expected_revision=0)
        with pytest.raises(NotFoundError):
            store.update_session_status("ls_9", SessionStatus.CANCELLED)

        assert breaker.is_closed

    def test_breaker_opens_and_fails_fast(self, inner, breaker):
        """Test repeated failures stop further calls to the store."""
        inner.revision.side_effect = ConnectionError("refused")
        store = GuardedSessionStore(inner, breaker)

        for _ in range(2):
            with pytest.raises(StoreUnavailableError):
                store.revision(DAY)

        with pytest.raises(CircuitBreakerOpenError):
            store.revision(DAY)

        assert inner.revision.call_count == 2
        assert breaker.is_open

    def test_checker_reports_unavailable_store(self, inner, breaker):
        """Test a conflict check over a failing store raises instead of reporting no conflict."""
        inner.revision.return_value = 0
        inner.find_sessions_for_teacher.side_effect = ConnectionError("refused")
        checker = ConflictChecker(GuardedSessionStore(inner, breaker))

        with pytest.raises(StoreUnavailableError):
            checker.check_teacher_conflict("t_1", DAY, "14:00", "15:00")


class TestGuardedSubstitutionStore:
    """Test cases for the substitution store guard."""

    def test_delegates_every_call(self):
        """Test calls reach the wrapped store unchanged."""
        inner = Mock(spec=SubstitutionStore)
        inner.list.return_value = []
        inner.find_for_session.return_value = []
        inner.get.return_value = None
        inner.delete.return_value = True
        store = GuardedSubstitutionStore(inner)
        filters = SubstitutionFilters(teacher_id="t_1")

        assert store.list(filters) == []
        assert store.find_for_session("ls_1", DAY) == []
        assert store.get("sub_1") is None
        assert store.delete("sub_1") is True

        inner.list.assert_called_once_with(filters)
        inner.find_for_session.assert_called_once_with("ls_1", DAY)

    def test_workflow_sees_unavailable_store(self, breaker):
        """Test a failing substitution backend surfaces as StoreUnavailableError."""
        inner = Mock(spec=SubstitutionStore)
        inner.list.side_effect = ConnectionError("db down")
        workflow = SubstitutionWorkflow(
            InMemorySessionStore(),
            GuardedSubstitutionStore(inner, breaker),
            StaticIdentityProvider("manager_1", managers={"manager_1"}),
        )

        with pytest.raises(StoreUnavailableError) as exc_info:
            workflow.list_substitutions()

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_duplicate_passes_through(self, breaker):
        """Test the uniqueness error is not mistaken for an outage."""
        inner = Mock(spec=SubstitutionStore)
        inner.add.side_effect = DuplicateSubstitutionError("already covered")
        store = GuardedSubstitutionStore(inner, breaker)

        for _ in range(3):
            with pytest.raises(DuplicateSubstitutionError):
                store.add(Mock())

        assert breaker.is_closed

    def test_breaker_opens(self, breaker):
        """Test repeated failures stop further calls."""
        inner = Mock(spec=SubstitutionStore)
        inner.get.side_effect = TimeoutError("slow")
        store = GuardedSubstitutionStore(inner, breaker)

        for _ in range(2):
            with pytest.raises(StoreUnavailableError):
                store.get("sub_1")
        with pytest.raises(CircuitBreakerOpenError):
            store.get("sub_1")

        assert inner.get.call_count == 2


class TestGuardedQualificationDirectory:
    """Test cases for the qualification directory guard."""

    def test_delegates(self):
        """Test lookups reach the wrapped directory."""
        inner = Mock(spec=QualificationDirectory)
        inner.find_qualified_teachers.return_value = []

        assert GuardedQualificationDirectory(inner).find_qualified_teachers("English", "Okskaya") == []
        inner.find_qualified_teachers.assert_called_once_with("English", "Okskaya")

    def test_finder_sees_unavailable_directory(self, breaker):
        """Test a directory timeout surfaces as StoreUnavailableError."""
        inner = Mock(spec=QualificationDirectory)
        inner.find_qualified_teachers.side_effect = TimeoutError("directory timeout")
        finder = AvailabilityFinder(
            ConflictChecker(InMemorySessionStore()),
            GuardedQualificationDirectory(inner, breaker),
        )

        with pytest.raises(StoreUnavailableError):
            finder.find_available_teachers("2025-03-10", "14:00", "English", "Okskaya")
