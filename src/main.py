# src/main.py — v2
"""CLI entry point — scan-code, scan-db, status, stop commands.

Usage:
    codeauditor scan-code [--files a.php b.php] [--scan-id ID]
    codeauditor scan-db [--type schema|data] [--tables users orders]
    codeauditor status <scan_id> [--results]
    codeauditor stop <scan_id>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from codeauditor.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from pydantic import ValidationError

    from codeauditor.config.settings import ConfigurationError, Settings

    try:
        settings = Settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="codeauditor",
        description=f"codeauditor v{__version__} — AI-assisted code and schema auditor",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- scan-code ---
    p_code = subparsers.add_parser("scan-code", help="Audit project source files")
    p_code.add_argument(
        "--files", nargs="+", default=None,
        help="Scan only these files or directories (relative to the scan root)",
    )
    p_code.add_argument("--scan-id", default=None, help="Explicit scan id")
    p_code.add_argument("--json", action="store_true", help="Print issues as JSON")
    p_code.set_defaults(func=_cmd_scan_code)

    # --- scan-db ---
    p_db = subparsers.add_parser("scan-db", help="Audit database schema or data")
    p_db.add_argument(
        "--type", dest="scan_type", choices=("schema", "data"), default="schema",
        help="What to audit (default: schema)",
    )
    p_db.add_argument(
        "--tables", nargs="+", default=None,
        help="Scan only these tables",
    )
    p_db.add_argument("--scan-id", default=None, help="Explicit scan id")
    p_db.add_argument("--json", action="store_true", help="Print issues as JSON")
    p_db.set_defaults(func=_cmd_scan_db)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show the state of a scan")
    p_status.add_argument("scan_id", help="Scan id")
    p_status.add_argument(
        "--results", action="store_true",
        help="Also print compiled results if still cached",
    )
    p_status.set_defaults(func=_cmd_status)

    # --- stop ---
    p_stop = subparsers.add_parser("stop", help="Ask a running scan to stop")
    p_stop.add_argument("scan_id", help="Scan id")
    p_stop.set_defaults(func=_cmd_stop)

    return parser


async def _cmd_scan_code(args: argparse.Namespace, settings) -> int:
    from codeauditor.api.facade import run_code_scan

    options = _options(args.scan_id, args.files)
    report = await run_code_scan(options, settings=settings)
    _print_report(report, args.json)
    return 0 if report.succeeded else 1


async def _cmd_scan_db(args: argparse.Namespace, settings) -> int:
    from codeauditor.api.facade import run_database_scan

    options = _options(args.scan_id, args.tables)
    report = await run_database_scan(args.scan_type, options, settings=settings)
    _print_report(report, args.json)
    return 0 if report.succeeded else 1


async def _cmd_status(args: argparse.Namespace, settings) -> int:
    from codeauditor.api.facade import build_tracker

    tracker = build_tracker(settings)
    state = await tracker.get(args.scan_id)
    if state is None:
        logger.error("Unknown scan: %s", args.scan_id)
        return 1

    print(f"\nScan {state.scan_id} ({state.scan_type}):")
    print(f"  Status:    {state.status}")
    print(f"  Progress:  {state.progress_pct}%")
    print(f"  Batches:   {state.processed_batches}/{state.total_batches}")
    print(f"  Items:     {state.processed_items}/{state.total_items}")
    print(f"  Message:   {state.message}")
    if state.error:
        print(f"  Error:     {state.error}")

    if args.results:
        results = await tracker.get_results(args.scan_id)
        if results is None:
            print("  Results:   expired or not available")
        else:
            print(json.dumps(results.model_dump(mode="json"), indent=2))
    return 0


async def _cmd_stop(args: argparse.Namespace, settings) -> int:
    from codeauditor.api.facade import request_stop

    await request_stop(args.scan_id, settings=settings)
    print(f"Stop requested for {args.scan_id}")
    return 0


def _options(scan_id: str | None, selection: list[str] | None):
    from codeauditor.api.models import ScanOptions

    if selection:
        return ScanOptions(scan_id=scan_id, mode="selective", selection=selection)
    return ScanOptions(scan_id=scan_id)


def _print_report(report, as_json: bool) -> None:
    """Print a human-readable summary of a ScanReport."""
    state = report.state
    if as_json and report.results is not None:
        print(json.dumps(report.results.model_dump(mode="json"), indent=2))
        return

    print(f"\nScan {report.scan_id} {state.status}:")
    print(f"  Items:     {state.processed_items}/{state.total_items}")
    print(f"  Batches:   {state.processed_batches}/{state.total_batches}")
    print(f"  Calls:     {report.analyze_calls} ({report.splits} splits)")
    print(f"  Duration:  {report.duration_ms / 1000:.1f}s")
    if state.error:
        print(f"  Error:     {state.error}")
    if state.failed_items:
        print(f"  Failed:    {len(state.failed_items)} items")
    if report.results is not None:
        summary = report.results.summary
        print(f"  Issues:    {summary.total_issues} ({summary.duplicates_removed} duplicates removed)")
        for severity, count in summary.by_severity.items():
            if count:
                print(f"    {severity:<9} {count}")


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from codeauditor.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
