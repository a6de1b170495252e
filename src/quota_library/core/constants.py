# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Fixed values shared across the quota library.

Paths here are defaults only; QuotaConfig resolves the effective values
from the environment.
"""

# =============================================================================
# UPSTREAM API
# =============================================================================

USAGE_API_URL = "https://api.anthropic.com/api/oauth/usage"
USAGE_API_BETA = "oauth-2025-04-20"

# Upstream response blocks
FIVE_HOUR_KEY = "five_hour"
SEVEN_DAY_KEY = "seven_day"
EXTRA_USAGE_KEY = "extra_usage"

# =============================================================================
# CACHE RECORD
# =============================================================================

SCHEMA_VERSION = 2

# Legacy flat field names (schema 1 readers and other implementations)
LEGACY_SESSION_PCT = "quota_used_pct"
LEGACY_WEEKLY_PCT = "weekly_used_pct"
LEGACY_SESSION_RESETS_IN = "resets_in"
LEGACY_WEEKLY_RESETS_IN = "weekly_resets"

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_CLAUDE_DIR_NAME = ".claude"
DEFAULT_CACHE_FILENAME = "quota-data.json"
DEFAULT_LOCK_FILENAME = ".quota-fetch.lock"
DEFAULT_CREDENTIALS_FILENAME = ".credentials.json"
DEFAULT_ENV_FILENAME = "quota.env"

DEFAULT_TTL_SECONDS = 60
DEFAULT_FETCH_TIMEOUT_SECONDS = 20

# Percentages within this distance of a whole number are stored as integers
PCT_INTEGER_TOLERANCE = 1e-7
