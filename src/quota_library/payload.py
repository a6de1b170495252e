# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Builders for the persisted quota record.

Two builders produce every record this library writes:

- build_success(): from a fresh upstream response
- build_degraded(): after a failed attempt, carrying forward the best
  values from the previous record and marking the result stale

Both are pure functions of their arguments. Records are plain dicts in
the schema 2 layout; the legacy flat fields are written alongside the
nested ones so older readers keep working.
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, Optional, Union

from .core.constants import (
    EXTRA_USAGE_KEY,
    FIVE_HOUR_KEY,
    LEGACY_SESSION_PCT,
    LEGACY_SESSION_RESETS_IN,
    LEGACY_WEEKLY_PCT,
    LEGACY_WEEKLY_RESETS_IN,
    PCT_INTEGER_TOLERANCE,
    SCHEMA_VERSION,
    SEVEN_DAY_KEY,
    USAGE_API_URL,
)
from .utils.time_format import canonical_timestamp, format_time_until, format_utc

Number = Union[int, float]

_NUMERIC_RE = re.compile(r"^-?[0-9]+(\.[0-9]*)?$")

# (nested path, legacy flat field) pairs, in lookup priority order
SESSION_PCT_PATHS = ("current_session.percent_used", LEGACY_SESSION_PCT)
WEEKLY_PCT_PATHS = ("weekly_limits.percent_used", LEGACY_WEEKLY_PCT)
SESSION_RESETS_IN_PATHS = ("current_session.resets_in", LEGACY_SESSION_RESETS_IN)
WEEKLY_RESETS_IN_PATHS = ("weekly_limits.resets_in", LEGACY_WEEKLY_RESETS_IN)


# =============================================================================
# FIELD HELPERS
# =============================================================================


def dig(document: Any, path: str) -> Any:
    node = document
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def lookup(document: Any, *paths: str) -> Any:
    """
    Return the first present value among ``paths``.

    Paths are dotted keys into nested objects. A value counts as present
    unless it is None, an empty string, or False.

    Example:
        lookup(record, "current_session.percent_used", "quota_used_pct")
    """
    for path in paths:
        value = dig(document, path)
        if value is None or value == "" or value is False:
            continue
        return value
    return None


def normalize_pct(value: Any) -> Optional[Number]:
    """
    Normalize a usage percentage.

    Returns:
        int when within 1e-7 of a whole number, float rounded to 2 decimals
        otherwise, or None for missing, non-numeric, or out-of-range input
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not _NUMERIC_RE.match(text):
            return None
        number = float(text)
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None

    if math.isnan(number) or number < 0 or number > 100:
        return None

    nearest = math.floor(number + 0.5)
    if abs(number - nearest) < PCT_INTEGER_TOLERANCE:
        return int(nearest)

    rounded = round(number, 2)
    if rounded.is_integer():
        return int(rounded)
    return rounded


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _failure_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0


def _status_code(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _extra_usage(block: Any) -> Dict[str, Any]:
    block = block if isinstance(block, dict) else {}
    return {
        "is_enabled": block.get("is_enabled"),
        "utilization": normalize_pct(block.get("utilization")),
        "used_credits": block.get("used_credits"),
        "monthly_limit": block.get("monthly_limit"),
    }


def _window(pct: Optional[Number], resets_at: str, resets_in: str) -> Dict[str, Any]:
    return {"percent_used": pct, "resets_at": resets_at, "resets_in": resets_in}


def _compose(
    *,
    source_url: str,
    attempted_at: str,
    fetched_at: str,
    session: Dict[str, Any],
    weekly: Dict[str, Any],
    extra: Dict[str, Any],
    valid: bool,
    stale_since: Optional[str],
    reason: str,
    last_success: str,
    status_code: Optional[int],
    failures: int,
) -> Dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "source_url": source_url,
        "attempted_at_utc": attempted_at,
        "fetched_at_utc": fetched_at,
        "current_session": session,
        "weekly_limits": weekly,
        "extra_usage": extra,
        LEGACY_SESSION_PCT: session["percent_used"],
        LEGACY_WEEKLY_PCT: weekly["percent_used"],
        LEGACY_SESSION_RESETS_IN: session["resets_in"],
        LEGACY_WEEKLY_RESETS_IN: weekly["resets_in"],
        "updated": attempted_at,
        "valid": valid,
        "stale": not valid,
        "stale_since": stale_since,
        "stale_reason": reason,
        "last_success_updated": last_success,
        "error": reason,
        "api_status_code": status_code,
        "consecutive_failures": failures,
    }


# =============================================================================
# BUILDERS
# =============================================================================


def build_success(
    response: Dict[str, Any],
    now: datetime,
    source_url: str = USAGE_API_URL,
) -> Dict[str, Any]:
    """
    Build the record for a successful fetch.

    Args:
        response: Parsed JSON body from the usage endpoint
        now: Time of the attempt
        source_url: Endpoint that was queried

    Returns:
        Record with valid=True and the failure state cleared
    """
    stamp = format_utc(now)

    def window(key: str) -> Dict[str, Any]:
        block = response.get(key)
        block = block if isinstance(block, dict) else {}
        resets_at = canonical_timestamp(block.get("resets_at"))
        return _window(
            normalize_pct(block.get("utilization")),
            resets_at,
            format_time_until(resets_at, now) if resets_at else "",
        )

    return _compose(
        source_url=source_url,
        attempted_at=stamp,
        fetched_at=stamp,
        session=window(FIVE_HOUR_KEY),
        weekly=window(SEVEN_DAY_KEY),
        extra=_extra_usage(response.get(EXTRA_USAGE_KEY)),
        valid=True,
        stale_since=None,
        reason="",
        last_success=stamp,
        status_code=200,
        failures=0,
    )


def build_degraded(
    previous: Optional[Dict[str, Any]],
    now: datetime,
    error: str,
    status_code: Optional[int] = None,
    source_url: str = USAGE_API_URL,
) -> Dict[str, Any]:
    """
    Build the record for a failed fetch.

    Starts from ``previous`` (or empty defaults), preferring nested fields
    and falling back to legacy flat ones. Countdowns are recomputed from
    the stored reset timestamps because time has passed since they were
    written.

    Args:
        previous: Last cached record, or None
        now: Time of the attempt
        error: Reason shown to the user
        status_code: HTTP status of the failed attempt, if any
        source_url: Endpoint used when the previous record has none

    Returns:
        Record with valid=False and stale=True
    """
    stamp = format_utc(now)
    prev = previous if isinstance(previous, dict) else {}

    session_at = _as_str(dig(prev, "current_session.resets_at"))
    weekly_at = _as_str(dig(prev, "weekly_limits.resets_at"))
    session_in = _as_str(lookup(prev, *SESSION_RESETS_IN_PATHS))
    weekly_in = _as_str(lookup(prev, *WEEKLY_RESETS_IN_PATHS))

    if session_at:
        session_in = format_time_until(session_at, now) or session_in
    if weekly_at:
        weekly_in = format_time_until(weekly_at, now) or weekly_in

    fetched_at = _as_str(prev.get("fetched_at_utc"))

    last_success = _as_str(prev.get("last_success_updated"))
    if not last_success:
        if prev.get("valid") is True:
            last_success = _as_str(prev.get("updated"))
        if not last_success:
            last_success = fetched_at

    stale_since = stamp
    if prev.get("stale") is True and prev.get("stale_since"):
        stale_since = _as_str(prev.get("stale_since"))

    return _compose(
        source_url=_as_str(prev.get("source_url")) or source_url,
        attempted_at=stamp,
        fetched_at=fetched_at,
        session=_window(normalize_pct(lookup(prev, *SESSION_PCT_PATHS)), session_at, session_in),
        weekly=_window(normalize_pct(lookup(prev, *WEEKLY_PCT_PATHS)), weekly_at, weekly_in),
        extra=_extra_usage(prev.get(EXTRA_USAGE_KEY)),
        valid=False,
        stale_since=stale_since,
        reason=error,
        last_success=last_success,
        status_code=_status_code(status_code),
        failures=_failure_count(prev.get("consecutive_failures")) + 1,
    )
