# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Projection of the cached record into the caller-facing QuotaResult.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from .core.types import QuotaResult
from .payload import (
    SESSION_PCT_PATHS,
    SESSION_RESETS_IN_PATHS,
    WEEKLY_PCT_PATHS,
    WEEKLY_RESETS_IN_PATHS,
    dig,
    lookup,
    normalize_pct,
)
from .utils.time_format import format_time_until


def format_pct(value: Any) -> str:
    """Render a percentage the way it is stored: "68", "31.46", or ""."""
    pct = normalize_pct(value)
    return "" if pct is None else str(pct)


def _flag(value: Any) -> str:
    return "true" if value is True else "false"


def _countdown(record: Dict[str, Any], resets_at_path: str, paths, refresh: bool, now) -> str:
    stored = lookup(record, *paths)
    stored = "" if stored is None else str(stored)
    if refresh:
        resets_at = dig(record, resets_at_path)
        if resets_at:
            return format_time_until(resets_at, now) or stored
    return stored


def project(record: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> QuotaResult:
    """
    Map a cached record (or None) to a QuotaResult.

    Nested fields win over legacy flat ones. For stale records the reset
    countdowns are recomputed against ``now`` so an outage does not freeze
    them.

    Args:
        record: Cached record from QuotaCacheStore.read()
        now: Clock for countdown recomputation (default: current time)
    """
    if not isinstance(record, dict):
        return QuotaResult()

    stale = record.get("stale") is True
    return QuotaResult(
        pct=format_pct(lookup(record, *SESSION_PCT_PATHS)),
        weekly_pct=format_pct(lookup(record, *WEEKLY_PCT_PATHS)),
        resets_in=_countdown(record, "current_session.resets_at", SESSION_RESETS_IN_PATHS, stale, now),
        weekly_resets_in=_countdown(record, "weekly_limits.resets_at", WEEKLY_RESETS_IN_PATHS, stale, now),
        stale=_flag(record.get("stale")),
        valid=_flag(record.get("valid")),
    )
