"""
Tests for the substitution workflow.
"""

import itertools
from datetime import date, datetime, timedelta

import pytest

from lesson_scheduling.engine.cancellation import CancellationToken
from lesson_scheduling.engine.substitutions import SubstitutionWorkflow
from lesson_scheduling.errors import (
    AuthorizationError,
    ConflictingReferenceError,
    DuplicateSubstitutionError,
    InvalidTransitionError,
    NotFoundError,
    OperationCancelledError,
    SameTeacherError,
    ValidationFailedError,
)
from lesson_scheduling.models.session import SessionKind
from lesson_scheduling.models.substitution import (
    SessionRef,
    SubstitutionFilters,
    SubstitutionStatus,
)
from lesson_scheduling.storage.memory import (
    InMemorySessionStore,
    InMemorySubstitutionStore,
    StaticIdentityProvider,
)


MANAGER = "manager_1"
DAY = date(2025, 3, 10)


class TickingClock:
    """Clock advancing one minute per call."""

    def __init__(self):
        self.now = datetime(2025, 3, 1, 9, 0)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def identity():
    return StaticIdentityProvider(MANAGER, managers={MANAGER})


@pytest.fixture
def substitutions():
    return InMemorySubstitutionStore()


@pytest.fixture
def workflow(make_session, identity, substitutions):
    sessions = InMemorySessionStore([
        make_session("ls_1", "14:00", "15:00", teacher_id="t_1"),
        make_session("ils_1", "16:00", "17:00", teacher_id="t_1", classroom="102",
                     students=["s_1"], kind=SessionKind.INDIVIDUAL),
    ])
    ids = (f"sub_{n}" for n in itertools.count(1))
    return SubstitutionWorkflow(
        sessions, substitutions, identity,
        id_factory=lambda: next(ids),
        clock=TickingClock(),
    )


def create(workflow, substitute="t_2", ref=None, original="t_1", **kwargs):
    return workflow.create_substitution(
        ref or SessionRef.group("ls_1"),
        original,
        substitute,
        kwargs.pop("substitution_date", "2025-03-10"),
        created_by=kwargs.pop("created_by", MANAGER),
        reason=kwargs.pop("reason", "Sick leave"),
        **kwargs,
    )


def move_to(workflow, substitution_id, status):
    """Drive a substitution into status through allowed transitions."""
    if status == SubstitutionStatus.PENDING:
        return
    if status == SubstitutionStatus.COMPLETED:
        workflow.approve(substitution_id)
    workflow.update_status(substitution_id, status)


class TestCreateSubstitution:
    """Test cases for create_substitution."""

    def test_creates_pending_record(self, workflow):
        """Test a valid request creates a pending substitution."""
        sub = create(workflow)

        assert sub.id == "sub_1"
        assert sub.status == SubstitutionStatus.PENDING
        assert sub.substitution_date == DAY
        assert sub.session_ref.session_id == "ls_1"
        assert sub.created_by == MANAGER
        assert sub.notes is None
        assert workflow.get_substitution("sub_1") == sub

    def test_individual_session(self, workflow):
        """Test substitutions can cover individual sessions."""
        sub = create(workflow, ref=SessionRef.individual("ils_1"))

        assert sub.session_ref.kind == SessionKind.INDIVIDUAL

    @pytest.mark.parametrize("teacher_id", ["t_1", "t_2", "unknown"])
    def test_same_teacher_rejected(self, workflow, teacher_id):
        """Test a teacher can never substitute for themselves."""
        with pytest.raises(SameTeacherError):
            create(workflow, original=teacher_id, substitute=teacher_id)

    @pytest.mark.parametrize("ref", [SessionRef("ls_1", "ils_1"), SessionRef()])
    def test_reference_must_be_exclusive(self, workflow, ref):
        """Test both or neither session reference is rejected."""
        with pytest.raises(ConflictingReferenceError):
            create(workflow, ref=ref)

    def test_unknown_session(self, workflow):
        """Test a missing session raises NotFoundError."""
        with pytest.raises(NotFoundError):
            create(workflow, ref=SessionRef.group("ls_missing"))

    def test_kind_mismatch_is_not_found(self, workflow):
        """Test a group reference to an individual session is rejected."""
        with pytest.raises(NotFoundError):
            create(workflow, ref=SessionRef.group("ils_1"))

    def test_invalid_fields(self, workflow):
        """Test field validation errors."""
        with pytest.raises(ValidationFailedError):
            create(workflow, substitution_date="10/03/2025")

    def test_repeat_request_is_idempotent(self, workflow, substitutions):
        """Test the same request twice returns the existing record."""
        first = create(workflow)
        second = create(workflow)

        assert second.id == first.id
        assert len(substitutions.list(SubstitutionFilters())) == 1

    def test_other_substitute_is_duplicate(self, workflow):
        """Test a second active substitution for the same occurrence is rejected."""
        create(workflow)

        with pytest.raises(DuplicateSubstitutionError):
            create(workflow, substitute="t_3")

    def test_cancelled_substitution_can_be_replaced(self, workflow):
        """Test a cancelled record does not block a new one."""
        first = create(workflow)
        workflow.cancel(first.id)

        replacement = create(workflow, substitute="t_3")

        assert replacement.id != first.id
        assert replacement.status == SubstitutionStatus.PENDING

    def test_other_date_is_independent(self, workflow):
        """Test another occurrence of the session can have its own substitution."""
        create(workflow)

        other = create(workflow, substitute="t_3", substitution_date="2025-03-17")

        assert other.substitution_date == date(2025, 3, 17)

    def test_observed_conflicts_noted(self, workflow):
        """Test the conflict count seen by the caller is kept as an audit note."""
        sub = create(workflow, observed_conflict_count=2)

        assert sub.notes == "Substitute had 2 conflicting session(s) when chosen"

    def test_cancelled_token(self, workflow):
        """Test cancellation stops creation before the store is touched."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            create(workflow, token=token)

    @pytest.mark.parametrize("action", ["approve", "cancel"])
    def test_cancelled_token_stops_transition(self, workflow, action):
        """Test a cancelled token leaves the record untouched."""
        sub = create(workflow)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            getattr(workflow, action)(sub.id, token=token)
        with pytest.raises(OperationCancelledError):
            workflow.get_substitution(sub.id, token=token)
        with pytest.raises(OperationCancelledError):
            workflow.effective_teacher_id(SessionRef.group("ls_1"), DAY, token=token)

        assert workflow.get_substitution(sub.id).status == SubstitutionStatus.PENDING


class TestTransitions:
    """Test cases for the status table."""

    ALL_PAIRS = list(itertools.product(SubstitutionStatus, SubstitutionStatus))
    VALID = {
        (SubstitutionStatus.PENDING, SubstitutionStatus.APPROVED),
        (SubstitutionStatus.PENDING, SubstitutionStatus.CANCELLED),
        (SubstitutionStatus.APPROVED, SubstitutionStatus.COMPLETED),
        (SubstitutionStatus.APPROVED, SubstitutionStatus.CANCELLED),
    }

    @pytest.mark.parametrize("current, requested", ALL_PAIRS)
    def test_transition_table(self, workflow, current, requested):
        """Test every (current, requested) pair against the four valid moves."""
        sub = create(workflow)
        move_to(workflow, sub.id, current)

        if (current, requested) in self.VALID:
            updated = workflow.update_status(sub.id, requested)
            assert updated.status == requested
            assert workflow.get_substitution(sub.id).status == requested
        else:
            with pytest.raises(InvalidTransitionError):
                workflow.update_status(sub.id, requested)
            assert workflow.get_substitution(sub.id).status == current

    def test_status_strings_accepted(self, workflow):
        """Test the status may be given by value."""
        sub = create(workflow)

        assert workflow.update_status(sub.id, "approved").status == SubstitutionStatus.APPROVED

    def test_unknown_status(self, workflow):
        """Test an unknown status value."""
        sub = create(workflow)

        with pytest.raises(ValidationFailedError):
            workflow.update_status(sub.id, "rejected")

    def test_unknown_substitution(self, workflow):
        """Test updating a missing record."""
        with pytest.raises(NotFoundError):
            workflow.approve("sub_missing")

    def test_updated_at_changes(self, workflow):
        """Test status changes refresh updated_at only."""
        sub = create(workflow)

        approved = workflow.approve(sub.id)

        assert approved.updated_at > sub.updated_at
        assert approved.created_at == sub.created_at

    def test_approval_keeps_session_owner(self, workflow):
        """Test approval does not touch the session's teacher."""
        sub = create(workflow)
        ref = SessionRef.group("ls_1")

        assert workflow.effective_teacher_id(ref, DAY) == "t_1"
        workflow.approve(sub.id)

        assert workflow.session_store.get_session("ls_1").teacher_id == "t_1"
        assert workflow.effective_teacher_id(ref, DAY) == "t_2"
        assert workflow.effective_teacher_id(ref, "2025-03-17") == "t_1"

        workflow.cancel(sub.id)
        assert workflow.effective_teacher_id(ref, DAY) == "t_1"


class TestAuthorization:
    """Test cases for who may change a substitution."""

    @pytest.fixture
    def sub(self, workflow):
        return create(workflow, created_by="coordinator_1")

    @pytest.mark.parametrize("actor, allowed", [
        ("coordinator_1", True),
        ("t_1", True),
        ("t_2", False),
        ("stranger", False),
        (MANAGER, True),
    ])
    def test_approve(self, workflow, sub, actor, allowed):
        """Test creator, original teacher and managers may approve."""
        if allowed:
            assert workflow.approve(sub.id, actor_id=actor).status == SubstitutionStatus.APPROVED
        else:
            with pytest.raises(AuthorizationError):
                workflow.approve(sub.id, actor_id=actor)

    @pytest.mark.parametrize("actor, allowed", [
        ("coordinator_1", True),
        ("t_1", False),
        ("t_2", True),
        ("stranger", False),
    ])
    def test_complete(self, workflow, sub, actor, allowed):
        """Test the substitute, the creator and managers may complete."""
        workflow.approve(sub.id)

        if allowed:
            assert workflow.complete(sub.id, actor_id=actor).status == SubstitutionStatus.COMPLETED
        else:
            with pytest.raises(AuthorizationError):
                workflow.complete(sub.id, actor_id=actor)

    @pytest.mark.parametrize("actor, allowed", [
        ("coordinator_1", True),
        ("t_1", True),
        ("t_2", True),
        ("stranger", False),
    ])
    def test_cancel(self, workflow, sub, actor, allowed):
        """Test anyone involved may cancel."""
        if allowed:
            assert workflow.cancel(sub.id, actor_id=actor).status == SubstitutionStatus.CANCELLED
        else:
            with pytest.raises(AuthorizationError):
                workflow.cancel(sub.id, actor_id=actor)

    def test_authorization_checked_before_transition(self, workflow, sub):
        """Test a stranger gets AuthorizationError even for an invalid transition."""
        with pytest.raises(AuthorizationError):
            workflow.complete(sub.id, actor_id="stranger")

    def test_acting_user_from_identity_provider(self, workflow, identity, sub):
        """Test the current user is used when no actor is given."""
        identity.act_as("stranger")

        with pytest.raises(AuthorizationError):
            workflow.approve(sub.id)

        identity.act_as("t_1")
        assert workflow.approve(sub.id).status == SubstitutionStatus.APPROVED


class TestListAndDelete:
    """Test cases for listing and deleting substitutions."""

    @pytest.fixture
    def seeded(self, workflow, make_session):
        workflow.session_store.insert_session(
            make_session("ls_2", "10:00", "11:00", teacher_id="t_2", classroom="103")
        )
        first = create(workflow, substitute="t_2")
        second = workflow.create_substitution(
            SessionRef.group("ls_2"), "t_2", "t_3", "2025-03-12", created_by=MANAGER
        )
        third = create(workflow, substitute="t_4", substitution_date="2025-03-03")
        return first, second, third

    def test_teacher_filter_matches_either_side(self, workflow, seeded):
        """Test t_2 sees the lesson they cover and the one they give up."""
        first, second, _ = seeded

        rows = workflow.list_substitutions(SubstitutionFilters(teacher_id="t_2"))

        assert [s.id for s in rows] == [second.id, first.id]

    def test_newest_date_first(self, workflow, seeded):
        """Test ordering by date descending."""
        rows = workflow.list_substitutions()

        assert [s.substitution_date for s in rows] == [
            date(2025, 3, 12), date(2025, 3, 10), date(2025, 3, 3)
        ]

    def test_status_and_date_filters(self, workflow, seeded):
        """Test filtering by status and date."""
        first, _, _ = seeded
        workflow.approve(first.id)

        approved = workflow.list_substitutions(SubstitutionFilters(status=SubstitutionStatus.APPROVED))
        on_day = workflow.list_substitutions(SubstitutionFilters(substitution_date=DAY))

        assert [s.id for s in approved] == [first.id]
        assert [s.id for s in on_day] == [first.id]

    def test_delete_by_creator(self, workflow):
        """Test the creator may delete a record permanently."""
        sub = create(workflow, created_by="coordinator_1")

        workflow.delete_substitution(sub.id, actor_id="coordinator_1")

        with pytest.raises(NotFoundError):
            workflow.get_substitution(sub.id)

    @pytest.mark.parametrize("actor", ["t_1", "t_2", "stranger"])
    def test_delete_forbidden(self, workflow, actor):
        """Test only the creator or a manager may delete."""
        sub = create(workflow, created_by="coordinator_1")

        with pytest.raises(AuthorizationError):
            workflow.delete_substitution(sub.id, actor_id=actor)

        assert workflow.get_substitution(sub.id) == sub

    def test_delete_missing(self, workflow):
        """Test deleting an unknown record."""
        with pytest.raises(NotFoundError):
            workflow.delete_substitution("sub_missing")
