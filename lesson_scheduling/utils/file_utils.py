"""
File operation utilities.

This module provides utilities for saving and loading data files
in various formats (JSON, CSV): session and teacher imports, and
exports of conflict reports and substitutions.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ..errors import ValidationFailedError
from ..models.result import Result
from ..models.session import LessonSession
from ..models.substitution import TeacherSubstitution
from ..models.teacher import TeacherProfile
from ..validation.session_validator import SessionRowValidator


logger = logging.getLogger(__name__)


def save_json(data: Any, filepath: Path) -> bool:
    """
    Save data to JSON file.

    Args:
        data: JSON-serialisable data to save
        filepath: Path to save the JSON file

    Returns:
        True if save successful, False otherwise

    Examples:
        >>> data = {"name": "test", "value": 42}
        >>> save_json(data, Path("output/test.json"))
        True
    """
    try:
        # Ensure parent directory exists
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.debug(f"Saved JSON file: {filepath}")
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save JSON file {filepath}: {e}", exc_info=True)
        return False


def load_json(filepath: Path) -> Optional[Any]:
    """
    Load data from JSON file.

    Args:
        filepath: Path to the JSON file

    Returns:
        Loaded data, or None if load failed

    Examples:
        >>> data = load_json(Path("output/test.json"))
        >>> if data:
        ...     print(data["name"])
    """
    try:
        if not filepath.exists():
            logger.warning(f"JSON file not found: {filepath}")
            return None

        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        logger.debug(f"Loaded JSON file: {filepath}")
        return data

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in file {filepath}: {e}")
        return None

    except OSError as e:
        logger.error(f"Failed to load JSON file {filepath}: {e}", exc_info=True)
        return None


def save_csv(df: pd.DataFrame, filepath: Path) -> bool:
    """
    Save DataFrame to CSV file.

    Args:
        df: Pandas DataFrame to save
        filepath: Path to save the CSV file

    Returns:
        True if save successful, False otherwise

    Examples:
        >>> df = pd.DataFrame({"col1": [1, 2], "col2": [3, 4]})
        >>> save_csv(df, Path("output/test.csv"))
        True
    """
    try:
        # Ensure parent directory exists
        filepath.parent.mkdir(parents=True, exist_ok=True)

        df.to_csv(filepath, index=False, encoding='utf-8')

        logger.debug(f"Saved CSV file: {filepath}")
        return True

    except OSError as e:
        logger.error(f"Failed to save CSV file {filepath}: {e}", exc_info=True)
        return False


def load_csv(filepath: Path) -> pd.DataFrame:
    """
    Load a CSV file with every column as text.

    Empty cells become None rather than NaN so rows can be handed to
    validators unchanged.

    Args:
        filepath: Path to the CSV file

    Returns:
        Loaded DataFrame

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationFailedError: If the file is not parseable CSV

    Examples:
        >>> df = load_csv(Path("data/sessions.csv"))
        >>> df.columns.tolist()
        ['id', 'lesson_date', 'start_time', ...]
    """
    if not filepath.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    try:
        df = pd.read_csv(filepath, dtype=str, encoding='utf-8', skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationFailedError(f"Cannot read CSV file {filepath}: {e}") from e

    df.columns = [str(column).strip() for column in df.columns]
    df = df.astype(object).where(pd.notna(df), None)

    logger.debug(f"Loaded CSV file: {filepath} ({len(df)} rows)")
    return df


def rows_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as plain dictionaries."""
    return df.to_dict(orient="records")


def load_session_rows(
    filepath: Path,
    validator: Optional[SessionRowValidator] = None
) -> List[Result[LessonSession]]:
    """
    Load lesson sessions from CSV, one Result per row.

    A bad row yields a failed Result (with the ValidationFailedError)
    and does not stop the rest of the import.

    Args:
        filepath: CSV with id, lesson_date, start_time, end_time,
            teacher_id, branch, classroom and optional status, kind,
            student_ids (";"-separated), group_name, teacher_name, notes
        validator: Row validator (default instance if omitted)

    Returns:
        Result per row, labelled with the CSV line number

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationFailedError: If the file is not parseable CSV
    """
    validator = validator or SessionRowValidator()
    rows = rows_from_frame(load_csv(filepath))

    # line 1 is the header
    results = [
        Result.capture(validator.to_session, row, label=f"line {index + 2}")
        for index, row in enumerate(rows)
    ]

    failed = sum(1 for r in results if r.is_failure)
    if failed:
        logger.warning(f"{failed} of {len(results)} session rows rejected in {filepath}")
    else:
        logger.info(f"Loaded {len(results)} sessions from {filepath}")
    return results


def load_proposals(
    filepath: Path,
    validator: Optional[SessionRowValidator] = None
) -> List[Result[LessonSession]]:
    """
    Load proposed sessions to check, in the same shape as session rows.

    Rows without an id get "proposal-<line>".
    """
    validator = validator or SessionRowValidator()
    rows = rows_from_frame(load_csv(filepath))

    results = []
    for index, row in enumerate(rows):
        line = index + 2
        if not row.get("id"):
            row["id"] = f"proposal-{line}"
        results.append(Result.capture(validator.to_session, row, label=f"line {line}"))

    logger.info(f"Loaded {len(results)} proposals from {filepath}")
    return results


def load_teacher_rows(filepath: Path) -> List[TeacherProfile]:
    """
    Load teacher profiles from CSV.

    Columns: teacher_id, first_name, last_name, subjects, branches
    (";"-separated lists).

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationFailedError: If a row has no teacher_id
    """
    teachers = []
    for index, row in enumerate(rows_from_frame(load_csv(filepath))):
        if not row.get("teacher_id"):
            raise ValidationFailedError(f"Missing teacher_id on line {index + 2} of {filepath}")
        teachers.append(TeacherProfile.from_dict(row))

    logger.info(f"Loaded {len(teachers)} teachers from {filepath}")
    return teachers


def export_records(records: List[Dict[str, Any]], filepath: Path) -> bool:
    """
    Write flat records as JSON or CSV, chosen by file extension.

    Args:
        records: Rows to write
        filepath: Target path ending in .json or .csv

    Returns:
        True if save successful, False otherwise

    Raises:
        ValueError: If the extension is neither .json nor .csv
    """
    suffix = filepath.suffix.lower()
    if suffix == ".json":
        return save_json(records, filepath)
    if suffix == ".csv":
        return save_csv(pd.DataFrame.from_records(records), filepath)
    raise ValueError(f"Unsupported export format: {filepath.suffix or '(none)'}")


def export_substitutions(substitutions: Iterable[TeacherSubstitution], filepath: Path) -> bool:
    """
    Export substitution records as JSON or CSV.

    Examples:
        >>> export_substitutions(workflow.list_substitutions(), Path("output/subs.csv"))
        True
    """
    records = [s.to_dict() for s in substitutions]
    ok = export_records(records, filepath)
    if ok:
        logger.info(f"Exported {len(records)} substitutions to {filepath}")
    return ok


def generate_filename(prefix: str, extension: str) -> str:
    """
    Generate timestamped filename.

    Args:
        prefix: Filename prefix
        extension: File extension (without dot)

    Returns:
        Filename with timestamp (e.g., "prefix_20251101_103045.ext")

    Examples:
        >>> filename = generate_filename("conflicts", "json")
        >>> # Returns something like: "conflicts_20251101_103045.json"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"
