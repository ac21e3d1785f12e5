# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Carbon CLI.

Usage:
    page-carbon analyze URL [--format text|json] [--content-id ID] [--db PATH]
                            [--green-hosting] [--grid-intensity G]
                            [--resource-timeout S] [--page-timeout S] [--max-concurrency N]

Exit codes: 0 success, 1 analysis failed, 2 invalid arguments.
Defaults come from ``PAGE_CARBON_*`` environment variables; flags override them.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
import uuid
from pathlib import Path
from urllib.parse import urlsplit

from . import PageCarbonReport
from .config import CarbonTrackerConfig
from .errors import AnalysisFailedError


def _is_page_url(url: str) -> bool:
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def default_content_id(page_url: str) -> str:
    """Stable id per URL so repeated runs build a history for the same page."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, page_url))


def _config_from_args(args: argparse.Namespace) -> CarbonTrackerConfig:
    config = CarbonTrackerConfig.from_env()
    overrides: dict[str, object] = {}
    if args.green_hosting:
        overrides["green_hosting"] = True
    for attr, field_name in (
        ("grid_intensity", "grid_intensity"),
        ("resource_timeout", "resource_timeout"),
        ("page_timeout", "page_timeout"),
        ("max_concurrency", "max_concurrent_fetches"),
    ):
        value = getattr(args, attr)
        if value is not None:
            overrides[field_name] = value
    return dataclasses.replace(config, **overrides) if overrides else config


async def _analyze(url: str, content_id: str, config: CarbonTrackerConfig, db_path: Path | None) -> PageCarbonReport:
    from ._progress import analysis_spinner, notice
    from .report import CarbonReportService

    service = CarbonReportService(config=config)
    with analysis_spinner(url):
        report = await service.generate_report(url, content_id)

    if db_path is not None:
        from .repository_sqlite import SqliteReportRepository

        repo = await SqliteReportRepository.create(db_path)
        try:
            await repo.save_report(report)
            removed = await repo.cleanup_old_reports(config.retention_days)
        finally:
            await repo.close()
        notice(f"Saved report #{report.id} to {db_path} ({removed} expired reports removed)")
    return report


def cmd_analyze(args: argparse.Namespace) -> int:
    """Analyze one page and print its report."""
    from .serializer import report_to_json, to_text

    if not _is_page_url(args.url):
        print(f"Error: invalid page URL {args.url!r} (expected absolute http(s) URL).", file=sys.stderr)
        return 2
    try:
        config = _config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    content_id = args.content_id or default_content_id(args.url)
    db_path = Path(args.db) if args.db else None
    try:
        report = asyncio.run(_analyze(args.url, content_id, config, db_path))
    except AnalysisFailedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(report_to_json(report) if args.format == "json" else to_text(report))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Page Carbon CLI", prog="page-carbon")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_analyze = subparsers.add_parser(
        "analyze",
        help="Estimate the carbon footprint of a page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s https://example.com                     Text report
  %(prog)s https://example.com --format json       JSON report on stdout
  %(prog)s https://example.com --db reports.db     Also store the report""",
    )
    p_analyze.add_argument("url", metavar="URL", help="Absolute http(s) page URL")
    p_analyze.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text)")
    p_analyze.add_argument("--content-id", type=str, help="Opaque content id (default: derived from URL)")
    p_analyze.add_argument("--db", type=str, metavar="PATH", help="SQLite database to store the report in")
    p_analyze.add_argument("--green-hosting", action="store_true", help="Hosting runs on renewable energy")
    p_analyze.add_argument("--grid-intensity", type=float, metavar="G", help="Grid intensity in g CO2/kWh")
    p_analyze.add_argument("--resource-timeout", type=float, metavar="S", help="Per-resource timeout in seconds")
    p_analyze.add_argument("--page-timeout", type=float, metavar="S", help="Whole-page timeout in seconds")
    p_analyze.add_argument("--max-concurrency", type=int, metavar="N", help="Simultaneous resource fetches")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    from .logging_config import configure

    parser = build_parser()
    args = parser.parse_args(argv)
    configure(json_output=args.log_json, level="DEBUG" if args.verbose else "WARNING")

    commands = {"analyze": cmd_analyze}
    try:
        code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
