"""
Command-line interface for the quick-parse tools.

Usage:
    quickparse parse FILE [FILE ...] [--grouped] [--group-kind KIND] [--group-id N]
    quickparse format FILE
    python -m quickparse parse questions.txt
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from quickparse.config import get_settings
from quickparse.models.questions import GroupKind, ParseMode, ParseResult, StructuredQuestion
from quickparse.services.formatter import format_question_text
from quickparse.services.group_allocator import (
    GroupAllocationError,
    GroupIdAllocator,
    document_key,
)
from quickparse.services.quick_parse import parse_question_text

_QUESTION_LIST = TypeAdapter(List[StructuredQuestion])


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="quickparse",
        description="Quick-parse CLI - Convert question notation to JSON and back"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse notation files into question JSON"
    )
    parse_parser.add_argument(
        "files",
        nargs="+",
        help="Text files in quick-parse notation ('-' reads stdin)"
    )
    parse_parser.add_argument(
        "--grouped",
        "-g",
        action="store_true",
        help="Parse Qn: sub-questions (one group per file)"
    )
    parse_parser.add_argument(
        "--group-kind",
        "-k",
        choices=[kind.value for kind in GroupKind],
        default=None,
        help="Grouping type (default: inferred from each file)"
    )
    parse_parser.add_argument(
        "--group-id",
        type=int,
        default=None,
        help="Explicit group number (single file only)"
    )
    parse_parser.add_argument(
        "--existing-group-ids",
        type=str,
        default="",
        help="Comma-separated group numbers already used in the lecture"
    )
    parse_parser.add_argument(
        "--single-line",
        action="store_true",
        help="Join statement lines with spaces"
    )

    format_parser = subparsers.add_parser(
        "format",
        help="Render question JSON back into notation"
    )
    format_parser.add_argument(
        "file",
        help="JSON file: a parse result, a list of questions or one question ('-' reads stdin)"
    )

    return parser


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _parse_id_list(value: str) -> List[int]:
    return [int(part) for part in value.split(",") if part.strip()]


def parse_command(args: argparse.Namespace) -> int:
    """
    Parse each file and print one ParseResult JSON per file.

    Group numbers are allocated across the whole run, so two grouped files
    never share a number and the same document always gets the same one.

    Returns:
        int: Exit code (0 when no file has error diagnostics, 1 otherwise)
    """
    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.group_id is not None and len(args.files) > 1:
        print("Error: --group-id can only be used with a single file", file=sys.stderr)
        return 1

    try:
        existing_ids = _parse_id_list(args.existing_group_ids)
    except ValueError:
        print("Error: --existing-group-ids must be comma-separated integers", file=sys.stderr)
        return 1

    mode = ParseMode.GROUPED if args.grouped else ParseMode.SINGLE
    multiline = settings.multiline_statements and not args.single_line
    allocator = GroupIdAllocator(existing_ids)
    requested_kind = GroupKind(args.group_kind) if args.group_kind else None
    failed = False

    for path in args.files:
        try:
            text = _read_text(path)
        except OSError as e:
            print(f"Error: cannot read {path}: {e}", file=sys.stderr)
            failed = True
            continue

        result: ParseResult = parse_question_text(
            text,
            mode,
            multiline_statements=multiline,
            group_kind=requested_kind,
            group_id=args.group_id,
            existing_group_ids=allocator.used_ids,
        )

        # The run-wide allocator owns the number, including for files with errors
        if mode == ParseMode.GROUPED and result.group_id is not None:
            try:
                result.group_id = allocator.allocate(
                    result.group_kind, key=document_key(text), requested=args.group_id
                )
            except GroupAllocationError as e:
                result.group_id = None
                print(f"Error: {path}: {e}", file=sys.stderr)
                failed = True

        for diagnostic in result.diagnostics:
            location = f":{diagnostic.line_number}" if diagnostic.line_number else ""
            print(
                f"{path}{location}: {diagnostic.severity.value}: {diagnostic.message}",
                file=sys.stderr,
            )

        print(result.model_dump_json(indent=2))
        if result.has_errors:
            failed = True

    return 1 if failed else 0


def _load_questions(data: object) -> tuple[List[StructuredQuestion], Optional[str], bool]:
    """Accept a ParseResult, a list of questions or a single question."""
    if isinstance(data, dict) and "questions" in data:
        result = ParseResult.model_validate(data)
        grouped = result.group_id is not None or result.case_text is not None or len(result.questions) > 1
        return result.questions, result.case_text, grouped
    if isinstance(data, list):
        return _QUESTION_LIST.validate_python(data), None, True
    return [StructuredQuestion.model_validate(data)], None, False


def format_command(args: argparse.Namespace) -> int:
    """
    Print the notation for the questions in a JSON file.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    try:
        data = json.loads(_read_text(args.file))
        questions, case_text, grouped = _load_questions(data)
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"Error: {args.file} is not valid question JSON: {e}", file=sys.stderr)
        return 1

    if not questions:
        print(f"Error: {args.file} contains no questions", file=sys.stderr)
        return 1

    if grouped:
        print(format_question_text(questions, case_text=case_text))
    else:
        print(format_question_text(questions[0]))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "parse":
        return parse_command(args)
    elif args.command == "format":
        return format_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
