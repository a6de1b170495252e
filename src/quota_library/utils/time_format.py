# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Timestamp formatting and countdown helpers.

All stored timestamps are UTC in the form ``YYYY-MM-DDTHH:MM:SS.fffZ``.
Functions that depend on the current time take an optional ``now`` so
callers (and tests) can pin the clock.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

TimestampLike = Union[str, datetime, None]

# fromisoformat() before 3.11 only accepts 3 or 6 fractional digits
_FRACTION_RE = re.compile(r"\.(\d+)")


def _pad_fraction(match: "re.Match") -> str:
    return "." + (match.group(1) + "000000")[:6]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_utc(dt: datetime) -> str:
    """Format a datetime as a canonical UTC timestamp with milliseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: TimestampLike) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing ``Z``, explicit offsets, and over-long fractional
    seconds. Naive values are taken as UTC.

    Returns:
        datetime, or None for empty/unparsable input
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text or text == "null":
            return None
        text = _FRACTION_RE.sub(_pad_fraction, text.replace("Z", "+00:00"))
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def canonical_timestamp(value: TimestampLike) -> str:
    """Re-format a timestamp canonically, or "" if it cannot be parsed."""
    dt = parse_timestamp(value)
    return format_utc(dt) if dt else ""


def format_time_until(value: TimestampLike, now: Optional[datetime] = None) -> str:
    """
    Human-friendly duration from now until ``value``.

    Examples:
        4 days 2 hours away  -> "4d2h"
        72 minutes away      -> "1h12m"
        5 minutes away       -> "5m"
        already passed       -> "0 min"
        empty / unparsable   -> ""
    """
    target = parse_timestamp(value)
    if target is None:
        return ""
    current = parse_timestamp(now) if now is not None else utc_now()

    delta = int((target - current).total_seconds())
    if delta <= 0:
        return "0 min"

    total_min = delta // 60
    days = total_min // 1440
    hours = (total_min % 1440) // 60
    mins = total_min % 60
    if days > 0:
        return f"{days}d{hours}h"
    if hours > 0:
        return f"{hours}h{mins}m"
    return f"{mins}m"


def format_time_ago(value: TimestampLike, now: Optional[datetime] = None) -> str:
    """Format a timestamp as relative time (e.g., '5 min ago')."""
    then = parse_timestamp(value)
    if then is None:
        return "Never"
    current = parse_timestamp(now) if now is not None else utc_now()

    delta = (current - then).total_seconds()
    if delta < 60:
        return f"{max(0, int(delta))}s ago"
    elif delta < 3600:
        return f"{int(delta / 60)} min ago"
    elif delta < 86400:
        return f"{int(delta / 3600)}h ago"
    else:
        return f"{int(delta / 86400)}d ago"
