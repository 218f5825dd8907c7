"""
Scheduling conflict detection and teacher substitution engine.

Subpackages:
- models: sessions, time ranges, conflict results, substitutions
- engine: conflict checker, availability finder, substitution workflow, booking
- storage: store interfaces and in-memory implementations
- resilience: circuit breaker around store access
- validation: row and request validators
- utils: configuration, logging, file import/export, DI container
"""

__version__ = "0.1.0"
