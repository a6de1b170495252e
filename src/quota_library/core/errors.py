# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Error taxonomy for upstream fetch failures.

These never escape to the status line caller. The fetcher raises them
internally and converts them into a failed FetchOutcome, which the payload
builder turns into a stale record.
"""

from typing import Optional


class QuotaFetchError(Exception):
    """Base class for every failed fetch attempt."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class CredentialUnavailableError(QuotaFetchError):
    """No OAuth token could be read."""

    def __init__(self, reason: str = "Cannot read OAuth token."):
        super().__init__(reason, None)


class AuthorizationRejectedError(QuotaFetchError):
    """Upstream rejected the token (401/403)."""

    def __init__(self, status_code: int):
        super().__init__(
            f"OAuth token rejected (HTTP {status_code}). "
            "Re-authenticate Claude Code.",
            status_code,
        )


class RateLimitedError(QuotaFetchError):
    """Upstream throttled the request (429)."""

    def __init__(self, status_code: int = 429):
        super().__init__(f"Rate limited by API (HTTP {status_code}).", status_code)


class UpstreamError(QuotaFetchError):
    """Any other non-success response, or an unreadable success body."""


class TransportError(QuotaFetchError):
    """Network failure or timeout; no status code is available."""

    def __init__(self, reason: str = "Request failed (network error or timeout)."):
        super().__init__(reason, None)


def classify_status(status_code: int) -> Optional[QuotaFetchError]:
    """
    Map an HTTP status to the matching error, or None for a 2xx status.

    Args:
        status_code: HTTP status returned by the usage endpoint

    Returns:
        QuotaFetchError instance (not raised) or None on success
    """
    if 200 <= status_code < 300:
        return None
    if status_code in (401, 403):
        return AuthorizationRejectedError(status_code)
    if status_code == 429:
        return RateLimitedError(status_code)
    return UpstreamError(f"API request failed (HTTP {status_code}).", status_code)
