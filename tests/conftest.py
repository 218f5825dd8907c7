"""
Shared fixtures for scheduling tests.
"""

from datetime import date

import pytest

from lesson_scheduling.models.session import LessonSession, SessionKind, SessionStatus, parse_time


LESSON_DAY = date(2025, 3, 10)


def build_session(
    session_id: str,
    start: str,
    end: str,
    teacher_id: str = "t_1",
    branch: str = "Kotelniki",
    classroom: str = "101",
    students=(),
    status: SessionStatus = SessionStatus.SCHEDULED,
    kind: SessionKind = SessionKind.GROUP,
    lesson_date: date = LESSON_DAY,
    group_name=None,
) -> LessonSession:
    """Build a session with sensible defaults."""
    return LessonSession(
        id=session_id,
        kind=kind,
        lesson_date=lesson_date,
        start_time=parse_time(start),
        end_time=parse_time(end),
        teacher_id=teacher_id,
        branch=branch,
        classroom=classroom,
        status=status,
        student_ids=frozenset(students),
        group_name=group_name or f"Group {session_id}",
    )


@pytest.fixture
def make_session():
    """Factory fixture for LessonSession objects."""
    return build_session


@pytest.fixture
def lesson_day():
    """Date used by most scenarios."""
    return LESSON_DAY
