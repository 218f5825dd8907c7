"""
Configuration management with environment variables.

This module provides centralized configuration management
with validation and type safety. Values are read from the process
environment and, if present, a .env file.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: str, cast=int):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from e


class Config:
    """
    Application configuration manager.

    Loads configuration from environment variables and provides
    validated access to configuration values.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path (rotated)
        output_dir: Output directory for reports
        default_duration: Slot length in minutes when only a start time is given
        query_timeout: Seconds before a conflict check is abandoned
        enforce_exclusion: Whether the session store rejects overlapping inserts
        breaker_threshold: Store failures before the circuit breaker opens
        breaker_reset_seconds: Seconds the breaker stays open

    Examples:
        >>> config = Config()
        >>> if config.validate():
        ...     print(f"Default lesson: {config.default_duration} min")
    """

    VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def __init__(self, load_env_file: bool = True):
        """
        Initialize configuration by loading environment variables.

        Args:
            load_env_file: Read a .env file before the environment
        """
        if load_env_file:
            load_dotenv()

        # Logging
        self._log_level = os.getenv("SCHEDULING_LOG_LEVEL", "INFO").upper()
        self._log_file = os.getenv("SCHEDULING_LOG_FILE") or None

        # Output
        self._output_dir = Path(os.getenv("SCHEDULING_OUTPUT_DIR", "output"))

        # Engine
        self._default_duration = _env_number("SCHEDULING_DEFAULT_DURATION", "80")
        self._query_timeout = _env_number("SCHEDULING_QUERY_TIMEOUT", "10", float)
        self._enforce_exclusion = _env_bool("SCHEDULING_ENFORCE_EXCLUSION", "true")

        # Circuit breaker
        self._breaker_threshold = _env_number("SCHEDULING_BREAKER_THRESHOLD", "5")
        self._breaker_reset_seconds = _env_number("SCHEDULING_BREAKER_RESET_SECONDS", "30", float)

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return self._log_level

    @property
    def log_file(self) -> Optional[str]:
        """Get log file path, or None for console-only logging."""
        return self._log_file

    @property
    def output_dir(self) -> Path:
        """Get output directory path."""
        return self._output_dir

    @property
    def default_duration(self) -> int:
        """Get default lesson duration in minutes."""
        return self._default_duration

    @property
    def query_timeout(self) -> float:
        """Get conflict check timeout in seconds."""
        return self._query_timeout

    @property
    def enforce_exclusion(self) -> bool:
        """Get whether overlapping teacher/room inserts are rejected."""
        return self._enforce_exclusion

    @property
    def breaker_threshold(self) -> int:
        """Get failure count that opens the circuit breaker."""
        return self._breaker_threshold

    @property
    def breaker_reset_seconds(self) -> float:
        """Get seconds before an open circuit breaker is retried."""
        return self._breaker_reset_seconds

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all configuration is valid

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if self._log_level not in self.VALID_LOG_LEVELS:
            errors.append(
                f"SCHEDULING_LOG_LEVEL must be one of: {', '.join(self.VALID_LOG_LEVELS)}"
            )

        # Lessons never cross midnight
        if not 0 < self._default_duration < 24 * 60:
            errors.append("SCHEDULING_DEFAULT_DURATION must be between 1 and 1439 minutes")

        if self._query_timeout <= 0:
            errors.append("SCHEDULING_QUERY_TIMEOUT must be positive")

        if self._breaker_threshold <= 0:
            errors.append("SCHEDULING_BREAKER_THRESHOLD must be positive")

        if self._breaker_reset_seconds <= 0:
            errors.append("SCHEDULING_BREAKER_RESET_SECONDS must be positive")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ValueError(error_msg)

        return True

    def create_output_directories(self):
        """Create output directories if they don't exist."""
        directories = [
            self.output_dir / "scheduling_reports",
        ]
        if self._log_file:
            directories.append(Path(self._log_file).parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def reports_dir(self) -> Path:
        """Directory for conflict and substitution reports."""
        return self.output_dir / "scheduling_reports"


# Singleton instance
config = Config()
