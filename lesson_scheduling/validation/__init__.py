from .validators import Validator, ValidationResult
from .session_validator import SessionRowValidator
from .substitution_validator import SubstitutionRequestValidator

__all__ = [
    "Validator",
    "ValidationResult",
    "SessionRowValidator",
    "SubstitutionRequestValidator",
]
