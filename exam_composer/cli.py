"""
Command-line interface for the exam composer.

Usage:
    python -m exam_composer validate draft.json
    python -m exam_composer submit draft.json [--token TOKEN]
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, Optional

from exam_composer.config import get_settings
from exam_composer.models.session import SessionContext
from exam_composer.services.composer import ExamComposer
from exam_composer.services.errors import FieldValueError


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="exam-composer",
        description="Exam Composer CLI - validate and submit exam drafts"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check a JSON exam draft without sending it"
    )
    validate_parser.add_argument("file", type=str, help="Path to the JSON draft")

    submit_parser = subparsers.add_parser(
        "submit",
        help="Validate a JSON exam draft and create the exam"
    )
    submit_parser.add_argument("file", type=str, help="Path to the JSON draft")
    submit_parser.add_argument(
        "--token",
        "-t",
        type=str,
        default=None,
        help="Bearer token for the exam service (default: EXAM_SERVICE_TOKEN)"
    )

    return parser


def load_draft_file(path: str) -> Optional[Dict[str, Any]]:
    """Read a JSON draft file. Prints the problem and returns None on failure."""
    if not os.path.isfile(path):
        print(f"Error: File not found: {path}")
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON: {e}")
        return None

    if not isinstance(data, dict):
        print(f"Error: {path} must contain a JSON object")
        return None

    return data


def _build_composer(path: str, session: Optional[SessionContext] = None) -> Optional[ExamComposer]:
    data = load_draft_file(path)
    if data is None:
        return None

    composer = ExamComposer(session=session)
    try:
        composer.load(data)
    except FieldValueError as e:
        print(f"Error: {e.field}: {e.message}")
        return None
    return composer


def validate_command(args: argparse.Namespace) -> int:
    """
    Execute validate command.

    Returns:
        int: Exit code (0 when the draft is valid, 1 otherwise)
    """
    composer = _build_composer(args.file)
    if composer is None:
        return 1

    report = composer.validate()
    if report.is_valid:
        questions = len(composer.draft.questions)
        state = composer.state()
        print(f"OK: {questions} question(s), max score {state.max_score}")
        return 0

    print(f"{len(report.errors)} problem(s) found:")
    for error in report.errors:
        print(f"  - {error.path}: {error.label}")
    return 1


async def submit_command(args: argparse.Namespace) -> int:
    """
    Execute submit command.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    settings = get_settings()
    session = SessionContext(access_token=args.token or settings.exam_service_token)

    composer = _build_composer(args.file, session=session)
    if composer is None:
        return 1

    result = await composer.submit()
    print(result.notification.message)

    for error in result.errors:
        print(f"  - {error.path}: {error.label}")

    return 0 if result.ok else 1


def main() -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    # Load settings up front so configuration problems are reported cleanly
    try:
        get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  EXAM_SERVICE_URL=http://localhost:3001/api")
        return 1

    if args.command == "validate":
        return validate_command(args)
    elif args.command == "submit":
        try:
            return asyncio.run(submit_command(args))
        except KeyboardInterrupt:
            print("\n\nInterrupted by user")
            return 1
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
