#!/usr/bin/env python3
"""
Lesson Scheduling Conflict Tool.

Checks proposed lesson sessions against an existing timetable and ranks
substitute teachers for a time slot.

Usage:
    python run_scheduling.py check --sessions SESSIONS.csv --proposals PROPOSALS.csv [--output DIR]
    python run_scheduling.py available --sessions SESSIONS.csv --teachers TEACHERS.csv
        --date YYYY-MM-DD --time HH:MM --subject SUBJECT --branch BRANCH [--end-time HH:MM]

Examples:
    # Check next week's proposed sessions
    python run_scheduling.py check --sessions data/sessions.csv --proposals data/proposals.csv

    # Who can cover English at Okskaya on 10 March at 14:00?
    python run_scheduling.py available --sessions data/sessions.csv --teachers data/teachers.csv \\
        --date 2025-03-10 --time 14:00 --subject English --branch Okskaya

Exit codes:
    0  no conflicts (check) / at least one free teacher (available)
    1  conflicts found (check) / no free teacher (available)
    2  input error (missing file, bad row, bad argument)
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Tuple

from lesson_scheduling.engine import AvailabilityFinder, CancellationToken, ConflictChecker
from lesson_scheduling.engine.conflicts import find_overlapping_sessions
from lesson_scheduling.errors import SchedulingError
from lesson_scheduling.models.conflict import CompositeConflictResult
from lesson_scheduling.models.result import Result
from lesson_scheduling.models.session import LessonSession
from lesson_scheduling.storage import (
    InMemoryQualificationDirectory,
    InMemorySessionStore,
    QualificationDirectory,
    SessionStore,
)
from lesson_scheduling.utils.config import config
from lesson_scheduling.utils.di_container import DIContainer, configure_default_services
from lesson_scheduling.utils.file_utils import (
    export_records,
    generate_filename,
    load_proposals,
    load_session_rows,
    load_teacher_rows,
    save_json,
)
from lesson_scheduling.utils.logger import setup_logger


EXIT_OK = 0
EXIT_CONFLICTS = 1
EXIT_INPUT_ERROR = 2


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Check lesson scheduling conflicts and find substitute teachers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=config.log_level if config.log_level in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO",
        help="Logging level (default: SCHEDULING_LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check proposed sessions for conflicts")
    check.add_argument("--sessions", required=True, type=Path, help="Existing sessions CSV")
    check.add_argument("--proposals", required=True, type=Path, help="Proposed sessions CSV")
    check.add_argument(
        "--output",
        type=Path,
        help="Report directory (default: SCHEDULING_OUTPUT_DIR/scheduling_reports)"
    )

    available = subparsers.add_parser("available", help="Rank substitute teachers for a slot")
    available.add_argument("--sessions", required=True, type=Path, help="Existing sessions CSV")
    available.add_argument("--teachers", required=True, type=Path, help="Teacher profiles CSV")
    available.add_argument("--date", required=True, help="Lesson date (YYYY-MM-DD)")
    available.add_argument("--time", required=True, help="Lesson start time (HH:MM)")
    available.add_argument("--end-time", help="Lesson end time (default: start + SCHEDULING_DEFAULT_DURATION)")
    available.add_argument("--subject", required=True, help="Subject to cover")
    available.add_argument("--branch", required=True, help="Branch of the lesson")

    return parser.parse_args(argv)


def build_container(sessions: List[LessonSession], teachers=()) -> DIContainer:
    """
    Wire engine services over the loaded files.

    The session store does not enforce exclusion: an existing timetable
    may already contain overlaps, which the check reports instead of
    refusing to load.
    """
    container = DIContainer()
    configure_default_services(container)
    container.register_instance(SessionStore, InMemorySessionStore(sessions, enforce_exclusion=False))
    container.register_instance(QualificationDirectory, InMemoryQualificationDirectory(teachers))
    return container


def split_results(results: List[Result[LessonSession]]) -> Tuple[List[LessonSession], List[Result]]:
    """Separate loaded sessions from rejected rows."""
    loaded = [r.value for r in results if r.is_success]
    rejected = [r for r in results if r.is_failure]
    return loaded, rejected


def print_rejected(kind: str, rejected: List[Result]):
    """Print rows that failed validation."""
    for result in rejected:
        print(f"  ✗ {kind} {result.message}")


def display_check_summary(checked: List[Tuple[LessonSession, Result[CompositeConflictResult]]], existing_overlaps: List[str]):
    """
    Display conflict summary.

    Args:
        checked: Proposal with its conflict check result
        existing_overlaps: Ids of already stored sessions sharing a room and time
    """
    print("\n" + "=" * 60)
    print("CONFLICT SUMMARY")
    print("=" * 60)
    conflicted = [p for p, r in checked if r.is_success and r.value.has_any_conflict]
    failed = [p for p, r in checked if r.is_failure]
    print(f"Proposals checked:        {len(checked)}")
    print(f"With conflicts:           {len(conflicted)}")
    print(f"Check failed:             {len(failed)}")
    print(f"Existing room overlaps:   {len(existing_overlaps)}")
    print("=" * 60)

    for proposal, result in checked:
        if result.is_failure:
            print(f"\n✗ {proposal.id}: check failed - {result.error}")
            continue
        report = result.value
        if not report.has_any_conflict:
            continue
        print(f"\n{proposal.id} ({proposal.time_range}, {proposal.branch} {proposal.classroom}):")
        for dimension_result in report.results:
            for conflict in dimension_result.conflicting_sessions:
                print(
                    f"  - {dimension_result.dimension.value:7s} {conflict.session_id} "
                    f"{conflict.time_label} {conflict.branch} {conflict.classroom}"
                )


def conflict_rows(checked: List[Tuple[LessonSession, Result[CompositeConflictResult]]]) -> List[dict]:
    """Flatten check results to one row per (proposal, dimension, conflicting session)."""
    rows = []
    for proposal, result in checked:
        if result.is_failure:
            continue
        for dimension_result in result.value.results:
            for conflict in dimension_result.conflicting_sessions:
                row = {"proposal_id": proposal.id, "dimension": dimension_result.dimension.value}
                row.update(conflict.to_dict())
                rows.append(row)
    return rows


def run_check(args, logger: logging.Logger) -> int:
    """Execute the check command."""
    print("\n[1/3] Loading sessions and proposals...")
    existing, rejected_sessions = split_results(load_session_rows(args.sessions))
    proposals, rejected_proposals = split_results(load_proposals(args.proposals))
    print(f"✓ {len(existing)} sessions, {len(proposals)} proposals")
    print_rejected("session", rejected_sessions)
    print_rejected("proposal", rejected_proposals)

    checker = build_container(existing).resolve(ConflictChecker)

    print(f"\n[2/3] Checking {len(proposals)} proposals...")
    checked = []
    for proposal in proposals:
        token = CancellationToken(timeout=config.query_timeout)
        result = Result.capture(checker.check_session, proposal, token=token, label=proposal.id)
        checked.append((proposal, result))

    existing_overlaps = find_overlapping_sessions(existing)
    display_check_summary(checked, existing_overlaps)

    print("\n[3/3] Saving report...")
    output_dir = args.output or config.reports_dir
    report = {
        "sessions_file": str(args.sessions),
        "proposals_file": str(args.proposals),
        "summary": {
            "sessions": len(existing),
            "proposals": len(proposals),
            "rejected_rows": len(rejected_sessions) + len(rejected_proposals),
            "with_conflicts": sum(1 for _, r in checked if r.is_success and r.value.has_any_conflict),
            "check_failed": sum(1 for _, r in checked if r.is_failure),
        },
        "existing_room_overlaps": existing_overlaps,
        "proposals": [
            {
                "proposal": proposal.to_dict(),
                "result": result.value.to_dict() if result.is_success else None,
                "error": str(result.error) if result.is_failure else None,
            }
            for proposal, result in checked
        ],
        "rejected_rows": [
            r.message
            for r in rejected_sessions + rejected_proposals
        ],
    }
    json_path = output_dir / generate_filename("conflict_report", "json")
    save_json(report, json_path)
    print(f"Report saved to: {json_path}")

    rows = conflict_rows(checked)
    if rows:
        csv_path = output_dir / generate_filename("conflicts", "csv")
        export_records(rows, csv_path)
        print(f"Conflicts saved to: {csv_path}")

    if rejected_sessions or rejected_proposals or report["summary"]["check_failed"]:
        logger.warning("Check finished with input errors")
        return EXIT_INPUT_ERROR
    return EXIT_CONFLICTS if report["summary"]["with_conflicts"] else EXIT_OK


def run_available(args, logger: logging.Logger) -> int:
    """Execute the available command."""
    existing, rejected = split_results(load_session_rows(args.sessions))
    if rejected:
        print_rejected("session", rejected)
        return EXIT_INPUT_ERROR

    teachers = load_teacher_rows(args.teachers)
    finder = build_container(existing, teachers).resolve(AvailabilityFinder)

    rows = finder.find_available_teachers(
        args.date,
        args.time,
        args.subject,
        args.branch,
        end_time=args.end_time,
        token=CancellationToken(timeout=config.query_timeout)
    )

    print("\n" + "=" * 60)
    print(f"TEACHERS FOR {args.subject} AT {args.branch}, {args.date} {args.time}")
    print("=" * 60)
    if not rows:
        print("No qualified teachers found.")
        return EXIT_CONFLICTS

    for idx, row in enumerate(rows, 1):
        status = "free" if not row.has_conflict else f"{row.conflict_count} conflict(s)"
        print(f"{idx:2d}. {row.name:30s} {row.teacher_id:12s} {status}")
    print("=" * 60)

    free = sum(1 for row in rows if not row.has_conflict)
    logger.info(f"{free} of {len(rows)} teachers free")
    return EXIT_OK if free else EXIT_CONFLICTS


def main(argv=None) -> int:
    """Main execution function."""
    args = parse_arguments(argv)

    logger = setup_logger(
        "lesson_scheduling",
        level=getattr(logging, args.log_level),
        log_file=config.log_file
    )

    try:
        config.validate()

        if args.command == "check":
            return run_check(args, logger)
        return run_available(args, logger)

    except (FileNotFoundError, ValueError, SchedulingError) as e:
        # InvalidRangeError, ValidationFailedError, bad configuration, missing files
        logger.error(f"Input error: {e}")
        print(f"\nERROR: {e}")
        return EXIT_INPUT_ERROR

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
