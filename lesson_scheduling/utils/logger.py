"""
Logging utilities with personal data masking.

This module provides logging setup with:
- Configurable log levels and output destinations
- Log rotation for file handlers
- Personal data masking (emails, phone numbers)
- Structured log format
"""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


EMAIL_PATTERN = re.compile(r'([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})')
PHONE_PATTERN = re.compile(r'(?<![\w:-])\+?\d[\d\s()-]{7,}\d(?![\w:])')
ISO_DATE_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')
MIN_PHONE_DIGITS = 10


def mask_email(email: str) -> str:
    """
    Mask email address for safe logging.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "u***@example.com")

    Examples:
        >>> mask_email("user@example.com")
        'u***@example.com'
        >>> mask_email("invalid")
        '***'
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.split("@", 1)
    masked_local = local[0] + "***" if len(local) > 0 else "***"
    return f"{masked_local}@{domain}"


def mask_phone(phone: str) -> str:
    """
    Mask phone number, keeping the last two digits.

    Examples:
        >>> mask_phone("+7 916 123-45-67")
        '***67'
        >>> mask_phone("1")
        '***'
    """
    digits = re.sub(r'\D', '', phone or "")
    if len(digits) < 4:
        return "***"
    return "***" + digits[-2:]


def mask_personal_data(text: str) -> str:
    """
    Mask every email address and phone number in text.

    Dates (2025-03-10) and times (14:00) are left alone.

    Examples:
        >>> mask_personal_data("Parent anna@example.com, +7 916 123-45-67")
        'Parent a***@example.com, ***67'
    """
    text = EMAIL_PATTERN.sub(lambda m: f"{m.group(1)}***@{m.group(2)}", text)
    return PHONE_PATTERN.sub(_mask_phone_match, text)


def _mask_phone_match(match: 're.Match') -> str:
    candidate = match.group(0)
    digits = re.sub(r'\D', '', candidate)
    if len(digits) < MIN_PHONE_DIGITS or ISO_DATE_PATTERN.search(candidate):
        return candidate
    return mask_phone(candidate)


class PersonalDataFilter(logging.Filter):
    """
    Logging filter that automatically masks personal information.

    Student and parent contact details can reach log messages through
    notes and validation errors; the filter masks them before output.
    It is attached to handlers so records from child loggers are masked
    too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter and mask personal data in log record.

        Args:
            record: Log record to filter

        Returns:
            Always True (allows all records through after masking)
        """
        record.msg = mask_personal_data(record.getMessage())
        record.args = None
        return True


def setup_logger(
    name: str = "lesson_scheduling",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and configure a logger instance.

    Args:
        name: Logger name (default: "lesson_scheduling")
        level: Logging level (default: logging.INFO)
        log_file: Optional path to log file for file output

    Returns:
        Configured logger instance

    Examples:
        >>> # Basic console logging
        >>> logger = setup_logger()
        >>> logger.info("Conflict check started")

        >>> # File logging with rotation
        >>> logger = setup_logger(
        ...     level=logging.DEBUG,
        ...     log_file="output/logs/scheduling.log"
        ... )
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    # Define log format
    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    personal_data_filter = PersonalDataFilter()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(personal_data_filter)
    logger.addHandler(console_handler)

    # File handler with rotation (if log file specified)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(personal_data_filter)
        logger.addHandler(file_handler)

    return logger
