# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Command line front end for the quota cache.

    statusline-quota get [--ttl N] [--format json|shell]
    statusline-quota statusline [--ttl N] [--label 5h]
    statusline-quota show
    statusline-quota refresh
    statusline-quota check
"""

import argparse
import json
import logging
import shlex
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from quota_library import QuotaConfig, QuotaCoordinator
from quota_library.core.types import QuotaResult
from quota_library.credentials import has_access_token

from .quota_viewer import build_statusline_segment, render_report


def configure_logging(verbose: bool = False) -> None:
    """Send library logs to stderr so stdout stays parseable."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    logger = logging.getLogger("quota_library")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def format_result(result: QuotaResult, fmt: str) -> str:
    """Serialize a QuotaResult as JSON or as shell assignments."""
    if fmt == "shell":
        return "\n".join(
            f"{key}={shlex.quote(value)}" for key, value in result.to_dict().items()
        )
    return json.dumps(result.to_dict())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statusline-quota",
        description="Cached Claude usage quota for status lines.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging on stderr"
    )
    sub = parser.add_subparsers(dest="command")

    get_cmd = sub.add_parser("get", help="Print the cached quota, refreshing if stale")
    get_cmd.add_argument("--ttl", type=int, default=None, help="Freshness window in seconds")
    get_cmd.add_argument(
        "--format", choices=("json", "shell"), default="json", help="Output format"
    )

    line_cmd = sub.add_parser("statusline", help="Print a compact colored segment")
    line_cmd.add_argument("--ttl", type=int, default=None, help="Freshness window in seconds")
    line_cmd.add_argument("--label", default="5h", help="Segment label")

    sub.add_parser("show", help="Show the full cached quota report")
    sub.add_parser("refresh", help="Fetch now and show the result")
    sub.add_parser("check", help="Verify that OAuth credentials are available")
    return parser


def _check(config: QuotaConfig, console: Console) -> int:
    path = config.credentials_file
    if not path.is_file():
        console.print(f"[yellow]⚠ No credentials file at {path}[/yellow]")
        console.print("[yellow]⚠ Run 'claude login' first.[/yellow]")
        return 1
    if not has_access_token(path):
        console.print(
            f"[yellow]⚠ {path} exists but holds no claudeAiOauth.accessToken.[/yellow]"
        )
        console.print("[yellow]⚠ Run 'claude login' first.[/yellow]")
        return 1
    console.print(f"[green]✓ OAuth token found in {path}[/green]")
    console.print(f"[dim]Cache file: {config.cache_file}[/dim]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    command = args.command or "get"
    config = QuotaConfig.from_env()
    coordinator = QuotaCoordinator(config)
    console = Console()

    if command == "get":
        result = coordinator.get(getattr(args, "ttl", None))
        print(format_result(result, getattr(args, "format", "json")))
        return 0

    if command == "statusline":
        segment = build_statusline_segment(coordinator.get(args.ttl), label=args.label)
        if segment.plain:
            Console(force_terminal=True, highlight=False).print(segment)
        return 0

    if command == "show":
        render_report(console, coordinator.read())
        return 0

    if command == "refresh":
        with console.status("[bold]Fetching quota...", spinner="dots"):
            result = coordinator.refresh_now()
        render_report(console, coordinator.read())
        return 0 if result.is_valid else 1

    if command == "check":
        return _check(config, console)

    parser.error(f"unknown command {command!r}")
    return 2


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
