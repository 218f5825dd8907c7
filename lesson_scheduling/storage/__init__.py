"""
Storage interfaces and in-memory implementations.
"""

from .interfaces import (
    IdentityProvider,
    QualificationDirectory,
    SessionStore,
    SubstitutionStore,
)
from .memory import (
    InMemoryQualificationDirectory,
    InMemorySessionStore,
    InMemorySubstitutionStore,
    StaticIdentityProvider,
)

__all__ = [
    "IdentityProvider",
    "QualificationDirectory",
    "SessionStore",
    "SubstitutionStore",
    "InMemoryQualificationDirectory",
    "InMemorySessionStore",
    "InMemorySubstitutionStore",
    "StaticIdentityProvider",
]
