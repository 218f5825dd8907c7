"""
Scheduling engine: conflict checking, availability search, substitutions.

Usage:
    >>> from lesson_scheduling.engine import ConflictChecker, AvailabilityFinder
    >>> checker = ConflictChecker(store)
    >>> finder = AvailabilityFinder(checker, directory)
"""

from .availability import AvailabilityFinder
from .booking import ConcurrencyGuard, SessionBooker
from .cancellation import CancellationToken
from .conflicts import ConflictChecker, blocking_overlaps, find_overlapping_sessions
from .substitutions import SubstitutionWorkflow

__all__ = [
    "AvailabilityFinder",
    "ConcurrencyGuard",
    "SessionBooker",
    "CancellationToken",
    "ConflictChecker",
    "blocking_overlaps",
    "find_overlapping_sessions",
    "SubstitutionWorkflow",
]
