# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Shared type definitions for the quota library.

The persisted cache record itself stays an untyped JSON document so that
records written by other implementations (or older schemas) round-trip
without loss. Only the values passed between components are typed here.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


# =============================================================================
# CALLER-FACING RESULT
# =============================================================================


@dataclass(frozen=True)
class QuotaResult:
    """
    Flat view of the cached record handed to the status line.

    Every field is a string so shell and template consumers can use the
    values directly. Unknown values are empty strings.
    """

    pct: str = ""  # 5-hour window usage, e.g. "68" or "31.46"
    weekly_pct: str = ""  # 7-day window usage
    resets_in: str = ""  # e.g. "1h12m"
    weekly_resets_in: str = ""  # e.g. "4d2h"
    stale: str = "false"
    valid: str = "false"

    @property
    def is_empty(self) -> bool:
        """True when nothing is known yet (no usable cache)."""
        return not self.pct and not self.weekly_pct

    @property
    def is_stale(self) -> bool:
        return self.stale == "true"

    @property
    def is_valid(self) -> bool:
        return self.valid == "true"

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


# =============================================================================
# FETCH TYPES
# =============================================================================


@dataclass
class FetchOutcome:
    """
    Result of a single upstream fetch attempt.

    Exactly one of ``body`` (success) or ``error`` (failure) is meaningful.
    """

    ok: bool
    body: Optional[Dict[str, Any]] = None  # Parsed JSON object on success
    error: str = ""  # Human readable reason on failure
    status_code: Optional[int] = None  # None when no HTTP status exists

    @classmethod
    def success(cls, body: Dict[str, Any], status_code: int = 200) -> "FetchOutcome":
        return cls(ok=True, body=body, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "FetchOutcome":
        return cls(ok=False, error=error, status_code=status_code)
