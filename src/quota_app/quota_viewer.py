# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Rich rendering of the cached quota record.

Two views:
- render_report(): the full report behind `statusline-quota show`
- build_statusline_segment(): the compact colored segment for a status line
"""

from datetime import datetime
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quota_library.core.types import QuotaResult
from quota_library.payload import (
    SESSION_PCT_PATHS,
    WEEKLY_PCT_PATHS,
    dig,
    lookup,
    normalize_pct,
)
from quota_library.projector import project
from quota_library.utils.time_format import format_time_ago


# =============================================================================
# DISPLAY CONFIGURATION
# =============================================================================

BAR_WIDTH = 20

# Usage thresholds for coloring (percent used)
USAGE_RED_ABOVE = 75
USAGE_YELLOW_ABOVE = 50

STALE_MARKER = "⚠"
RESET_MARKER = "↻"

# (icon, label, color)
STATE_DISPLAY = {
    "valid": (":white_check_mark:", "Fresh", "green"),
    "stale": (":warning:", "Stale", "yellow"),
    "empty": (":no_entry:", "No data", "red"),
}

# =============================================================================


def usage_color(pct: Optional[float]) -> str:
    """Color for a usage percentage."""
    if pct is None:
        return "dim"
    if pct > USAGE_RED_ABOVE:
        return "red"
    if pct > USAGE_YELLOW_ABOVE:
        return "yellow"
    return "green"


def create_progress_bar(percent: Optional[float], width: int = BAR_WIDTH) -> str:
    """Create a text-based progress bar."""
    if percent is None:
        return "░" * width
    filled = min(width, int(percent / 100 * width))
    return "▓" * filled + "░" * (width - filled)


def _parse_pct(text: str) -> Optional[float]:
    value = normalize_pct(text)
    return None if value is None else float(value)


def build_statusline_segment(result: QuotaResult, label: str = "5h") -> Text:
    """
    Compact segment such as ``5h:68% ↻1h12m``.

    A stale marker follows the percentage when the data is stale. Returns
    an empty Text when no percentage is known.
    """
    pct = _parse_pct(result.pct)
    if pct is None:
        return Text()

    display = f"{label}:{result.pct}%"
    if result.is_stale:
        display += STALE_MARKER
    if result.resets_in:
        display += f" {RESET_MARKER}{result.resets_in}"
    return Text(display, style=usage_color(pct))


def _state_key(record: Optional[Dict[str, Any]]) -> str:
    if not record:
        return "empty"
    if record.get("valid") is True:
        return "valid"
    return "stale"


def _window_row(table: Table, name: str, pct_value: Any, resets_in: str, resets_at: Any) -> None:
    pct = normalize_pct(pct_value)
    color = usage_color(None if pct is None else float(pct))
    pct_str = "-" if pct is None else f"{pct}%"
    table.add_row(
        name,
        f"[{color}]{create_progress_bar(None if pct is None else float(pct))}[/{color}]",
        f"[{color}]{pct_str}[/{color}]",
        resets_in or "-",
        str(resets_at) if resets_at else "-",
    )


def render_report(
    console: Console,
    record: Optional[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> None:
    """Print the full quota report for a cached record (or the lack of one)."""
    icon, label, color = STATE_DISPLAY[_state_key(record)]

    if not record:
        console.print(
            Panel(
                "[yellow]No quota data cached yet. Run `statusline-quota refresh`.[/yellow]",
                title="Claude quota",
                border_style=color,
            )
        )
        return

    result = project(record, now=now)

    table = Table(box=None, show_header=True, header_style="bold", padding=(0, 1))
    table.add_column("Window", style="cyan")
    table.add_column("Usage")
    table.add_column("%", justify="right")
    table.add_column("Resets in", justify="right")
    table.add_column("Resets at")

    _window_row(
        table,
        "5-hour",
        lookup(record, *SESSION_PCT_PATHS),
        result.resets_in,
        dig(record, "current_session.resets_at"),
    )
    _window_row(
        table,
        "7-day",
        lookup(record, *WEEKLY_PCT_PATHS),
        result.weekly_resets_in,
        dig(record, "weekly_limits.resets_at"),
    )

    extra = record.get("extra_usage")
    if isinstance(extra, dict) and extra.get("is_enabled") is True:
        used = extra.get("used_credits")
        limit = extra.get("monthly_limit")
        credits = f"{used}/{limit}" if limit is not None else str(used)
        _window_row(table, "Extra", extra.get("utilization"), credits, None)

    lines = [
        f"[{color}]{icon} {label}[/{color}]",
        f"[dim]Last success: {format_time_ago(record.get('last_success_updated'), now)}"
        f" | Last attempt: {format_time_ago(record.get('attempted_at_utc'), now)}[/dim]",
    ]

    if record.get("stale") is True:
        failures = record.get("consecutive_failures") or 0
        since = record.get("stale_since")
        lines.append(
            f"[yellow]Stale since {format_time_ago(since, now)}"
            f" ({failures} consecutive failure{'s' if failures != 1 else ''})[/yellow]"
        )
        if record.get("error"):
            lines.append(f"[red]{escape(str(record['error']))}[/red]")

    console.print(
        Panel.fit(
            table,
            title="[bold cyan]Claude quota[/bold cyan]",
            subtitle=f"[dim]{record.get('source_url', '')}[/dim]",
            border_style=color,
        )
    )
    for line in lines:
        console.print(line)

