from .circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState
from .guarded_store import GuardedQualificationDirectory, GuardedSessionStore, GuardedSubstitutionStore

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "GuardedQualificationDirectory",
    "GuardedSessionStore",
    "GuardedSubstitutionStore",
]
