"""
Command-line interface for meeting-insights.

Subcommands:
- meeting-insights analyze: analyze a transcript file (or stdin) and store it
- meeting-insights list: list stored analyses, newest first
- meeting-insights show: print one stored analysis
- meeting-insights delete: delete a stored analysis
- meeting-insights serve: run the REST API with uvicorn
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from . import __version__
from .config import Settings, configure_logging
from .error_translator import translate
from .exceptions import MeetingInsightsError, ValidationError
from .models import AnalysisRecord
from .orchestrator import AnalysisOrchestrator
from .store import AnalysisRepository, SQLiteAnalysisStore
from .validation import DEFAULT_LIST_LIMIT


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="meeting-insights",
        description="Analyze meeting transcripts with an LLM and browse stored analyses.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (default: MEETING_INSIGHTS_DB_PATH or ~/.meeting-insights/analyses.db).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON instead of formatted text.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: MEETING_INSIGHTS_LOG_LEVEL or INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_analyze = subparsers.add_parser("analyze", help="Analyze a transcript and store the result.")
    p_analyze.add_argument(
        "file",
        nargs="?",
        default="-",
        help="Transcript text file, or '-' to read stdin (default).",
    )
    p_analyze.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not try the second provider when the first one fails.",
    )

    p_list = subparsers.add_parser("list", help="List stored analyses, newest first.")
    p_list.add_argument("--limit", type=int, default=DEFAULT_LIST_LIMIT, help="Page size (1-100).")
    p_list.add_argument("--offset", type=int, default=0, help="Rows to skip.")

    p_show = subparsers.add_parser("show", help="Show one stored analysis.")
    p_show.add_argument("id", help="Analysis ID.")

    p_delete = subparsers.add_parser("delete", help="Delete an analysis and its transcript.")
    p_delete.add_argument("id", help="Analysis ID.")

    p_serve = subparsers.add_parser("serve", help="Run the REST API (development server).")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1).")
    p_serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000).")
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes.")

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides: dict[str, Any] = {}
    if args.db is not None:
        overrides["db_path"] = args.db.expanduser()
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if getattr(args, "no_fallback", False):
        overrides["enable_fallback"] = False
    return settings.with_overrides(**overrides) if overrides else settings


def _read_transcript(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read transcript file {path}: {e}") from e


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _print_record(record: AnalysisRecord) -> None:
    print(f"{record.title or '(untitled)'} [{record.sentiment}]")
    print(f"  id:      {record.id}")
    print(f"  created: {record.created_at}")
    if record.summary:
        print(f"\nSummary:\n  {record.summary}")

    print("\nAction items:")
    if not record.action_items:
        print("  (none)")
    for i, item in enumerate(record.action_items, 1):
        details = []
        if item.owner:
            details.append(f"owner: {item.owner}")
        if item.deadline:
            details.append(f"due: {item.deadline}")
        suffix = f" ({', '.join(details)})" if details else ""
        print(f"  {i}. {item.description}{suffix}")

    print("\nKey decisions:")
    if not record.key_decisions:
        print("  (none)")
    for i, decision in enumerate(record.key_decisions, 1):
        suffix = f" - {decision.context}" if decision.context else ""
        print(f"  {i}. {decision.decision}{suffix}")


async def _run_store_command(args: argparse.Namespace, settings: Settings) -> int:
    with SQLiteAnalysisStore.open(settings.db_path) as store:
        repository = AnalysisRepository(store)

        if args.command == "analyze":
            text = _read_transcript(args.file)
            orchestrator = AnalysisOrchestrator(settings, repository)
            record = await orchestrator.analyze(text)
            if args.json:
                _print_json(record.to_dict())
            else:
                _print_record(record)

        elif args.command == "list":
            page = await repository.list_page(limit=args.limit, offset=args.offset)
            if args.json:
                _print_json(page.to_dict())
            else:
                for summary in page.analyses:
                    print(
                        f"{summary.id}  {summary.created_at}  "
                        f"{summary.sentiment:<8}  {summary.title or '(untitled)'}"
                    )
                print(f"\n{len(page.analyses)} of {page.total} analyses")

        elif args.command == "show":
            record = await repository.get_by_id(args.id)
            if args.json:
                _print_json(record.to_dict())
            else:
                _print_record(record)

        elif args.command == "delete":
            await repository.delete_by_id(args.id)
            if args.json:
                _print_json({"success": True, "message": "Analysis deleted successfully"})
            else:
                print(f"Deleted analysis {args.id}")

    return 0


def _handle_serve_command(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    # uvicorn calls create_app, which reads its settings from the environment
    os.environ["MEETING_INSIGHTS_DB_PATH"] = str(settings.db_path)
    os.environ["MEETING_INSIGHTS_LOG_LEVEL"] = settings.log_level

    uvicorn.run(
        "meeting_insights.service:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point.

    Returns:
        0 on success, 1 on a library error, 2 on unexpected error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_from_args(args)
        configure_logging(settings.log_level)

        if args.command == "serve":
            return _handle_serve_command(args, settings)
        return asyncio.run(_run_store_command(args, settings))

    except MeetingInsightsError as e:
        envelope = translate(e)
        if args.json:
            _print_json(envelope.to_dict())
        else:
            print(f"Error: {envelope.user_message}", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
