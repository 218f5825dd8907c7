"""
Dependency Injection Container.

Components receive their stores through constructors; this container
wires them together. Singleton creation is guarded by a lock because the
conflict checker resolves services from worker threads.
"""

import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Type


logger = logging.getLogger(__name__)


class _Registration(NamedTuple):
    factory: Callable[[], Any]
    singleton: bool


class DIContainer:
    """
    Small dependency injection container.

    Supports:
    - Transient and singleton factories
    - Ready-made instances (a store loaded from a file, a test double)
    - Replacing a registration before first use

    Examples:
        >>> container = DIContainer()
        >>> configure_default_services(container)
        >>> container.register_instance(SessionStore, InMemorySessionStore(sessions))
        >>> checker = container.resolve(ConflictChecker)
    """

    def __init__(self):
        """Initialize empty container."""
        self._registrations: Dict[Type, _Registration] = {}
        self._instances: Dict[Type, Any] = {}
        self._lock = threading.RLock()

    def register(
        self,
        interface: Type,
        implementation: Callable[[], Any],
        singleton: bool = False
    ):
        """
        Register a factory for a service.

        Registering an interface again replaces the earlier factory and
        drops any singleton already built from it.

        Args:
            interface: Service interface or type
            implementation: Zero-argument factory creating the service
            singleton: Whether to create a single shared instance
        """
        with self._lock:
            self._registrations[interface] = _Registration(implementation, singleton)
            self._instances.pop(interface, None)

        logger.debug(f"Registered service: {interface.__name__} (singleton={singleton})")

    def register_instance(self, interface: Type, instance: Any):
        """Register an already built object as a singleton."""
        with self._lock:
            self._registrations[interface] = _Registration(lambda: instance, True)
            self._instances[interface] = instance

        logger.debug(f"Registered instance: {interface.__name__} ({type(instance).__name__})")

    def resolve(self, interface: Type) -> Any:
        """
        Resolve a service.

        Raises:
            ValueError: If the service is not registered
        """
        with self._lock:
            registration = self._registrations.get(interface)
            if registration is None:
                raise ValueError(
                    f"Service not registered: {interface.__name__}. "
                    f"Available services: {', '.join(self.get_registered_services())}"
                )

            if not registration.singleton:
                return registration.factory()

            if interface not in self._instances:
                logger.debug(f"Creating singleton instance: {interface.__name__}")
                self._instances[interface] = registration.factory()
            return self._instances[interface]

    def is_registered(self, interface: Type) -> bool:
        """Check if a service is registered."""
        return interface in self._registrations

    def clear(self):
        """Clear all registered services."""
        with self._lock:
            self._registrations.clear()
            self._instances.clear()

    def get_registered_services(self) -> list:
        """Names of all registered service types."""
        return [service.__name__ for service in self._registrations]


def booking_guard(cfg) -> "ConcurrencyGuard":
    """
    Concurrency guard matching the session store configuration.

    A store without the exclusion constraint cannot reject a double
    booking, so bookings carry the checked revision (If-Match) instead.
    """
    from ..engine import ConcurrencyGuard

    if cfg.enforce_exclusion:
        return ConcurrencyGuard.EXCLUSION_CONSTRAINT
    return ConcurrencyGuard.OPTIMISTIC_REVISION


def configure_default_services(container: DIContainer):
    """
    Configure default services for the application.

    Registers configuration, logging, in-memory stores behind the
    circuit breaker, and the engine services built on them. Any
    registration can be replaced afterwards, e.g. a database-backed
    SessionStore or an identity provider wired to authentication.

    Args:
        container: DI container to configure

    Examples:
        >>> container = DIContainer()
        >>> configure_default_services(container)
        >>> checker = container.resolve(ConflictChecker)
    """
    from datetime import timedelta

    from ..engine import (
        AvailabilityFinder,
        ConflictChecker,
        SessionBooker,
        SubstitutionWorkflow,
    )
    from ..resilience import (
        CircuitBreaker,
        GuardedQualificationDirectory,
        GuardedSessionStore,
        GuardedSubstitutionStore,
    )
    from ..storage import (
        IdentityProvider,
        InMemoryQualificationDirectory,
        InMemorySessionStore,
        InMemorySubstitutionStore,
        QualificationDirectory,
        SessionStore,
        StaticIdentityProvider,
        SubstitutionStore,
    )
    from .config import Config, config
    from .logger import setup_logger

    # Singleton services
    container.register(Config, lambda: config, singleton=True)

    container.register(
        logging.Logger,
        lambda: setup_logger(
            "lesson_scheduling",
            level=getattr(logging, container.resolve(Config).log_level, logging.INFO),
            log_file=container.resolve(Config).log_file
        ),
        singleton=True
    )

    def create_breaker():
        cfg = container.resolve(Config)
        return CircuitBreaker(
            failure_threshold=cfg.breaker_threshold,
            timeout=timedelta(seconds=cfg.breaker_reset_seconds)
        )

    # each backend gets its own breaker
    container.register(
        SessionStore,
        lambda: GuardedSessionStore(
            InMemorySessionStore(enforce_exclusion=container.resolve(Config).enforce_exclusion),
            create_breaker()
        ),
        singleton=True
    )
    container.register(
        SubstitutionStore,
        lambda: GuardedSubstitutionStore(InMemorySubstitutionStore(), create_breaker()),
        singleton=True
    )
    container.register(
        QualificationDirectory,
        lambda: GuardedQualificationDirectory(InMemoryQualificationDirectory(), create_breaker()),
        singleton=True
    )
    container.register(IdentityProvider, lambda: StaticIdentityProvider("system"), singleton=True)

    container.register(
        ConflictChecker,
        lambda: ConflictChecker(container.resolve(SessionStore)),
        singleton=True
    )
    container.register(
        AvailabilityFinder,
        lambda: AvailabilityFinder(
            container.resolve(ConflictChecker),
            container.resolve(QualificationDirectory),
            default_duration=container.resolve(Config).default_duration
        ),
        singleton=True
    )
    container.register(
        SubstitutionWorkflow,
        lambda: SubstitutionWorkflow(
            container.resolve(SessionStore),
            container.resolve(SubstitutionStore),
            container.resolve(IdentityProvider)
        ),
        singleton=True
    )
    container.register(
        SessionBooker,
        lambda: SessionBooker(
            container.resolve(SessionStore),
            container.resolve(ConflictChecker),
            guard=booking_guard(container.resolve(Config))
        ),
        singleton=True
    )

    logger.info("Default services configured")
