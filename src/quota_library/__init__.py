# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Cached quota readings for status line renderers.

Usage:
    from quota_library import get_quota

    result = get_quota(ttl=60)
    print(f"5h:{result.pct}% ↻{result.resets_in}")
"""

import logging

from .config import QuotaConfig
from .coordinator import QuotaCoordinator, get_quota, refresh_once
from .core.types import FetchOutcome, QuotaResult
from .projector import project
from .storage import QuotaCacheStore

# The library stays silent unless the application configures logging
logging.getLogger("quota_library").addHandler(logging.NullHandler())

__all__ = [
    "FetchOutcome",
    "QuotaCacheStore",
    "QuotaConfig",
    "QuotaCoordinator",
    "QuotaResult",
    "get_quota",
    "project",
    "refresh_once",
]
