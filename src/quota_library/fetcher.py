# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Usage endpoint client.

API Details:
- Endpoint: GET https://api.anthropic.com/api/oauth/usage
- Auth: Authorization: Bearer <claudeAiOauth.accessToken>
- Header: anthropic-beta: oauth-2025-04-20
- Response: {
      "five_hour": {"utilization": float, "resets_at": str},
      "seven_day": {"utilization": float, "resets_at": str},
      "extra_usage": {"is_enabled": bool, "utilization": float,
                      "used_credits": float, "monthly_limit": float} | null,
      ...
  }

Failures are reported as a FetchOutcome, never raised.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .config import QuotaConfig
from .core.errors import (
    QuotaFetchError,
    TransportError,
    UpstreamError,
    classify_status,
)
from .core.types import FetchOutcome
from .credentials import load_access_token

lib_logger = logging.getLogger("quota_library")


class UsageFetcher:
    """Fetches the current quota usage for the logged-in account."""

    def __init__(self, config: QuotaConfig):
        self.config = config

    def _build_headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "anthropic-beta": self.config.beta,
            "Accept": "application/json",
        }

    async def _request(self, client: httpx.AsyncClient, token: str) -> Dict[str, Any]:
        try:
            response = await client.get(
                self.config.api_url,
                headers=self._build_headers(token),
                timeout=self.config.fetch_timeout,
            )
        except httpx.HTTPError as e:
            lib_logger.debug(f"Usage request transport failure: {type(e).__name__}: {e}")
            raise TransportError() from e

        error = classify_status(response.status_code)
        if error is not None:
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "API returned an unreadable response body.", response.status_code
            ) from e
        if not isinstance(data, dict):
            raise UpstreamError(
                "API returned an unreadable response body.", response.status_code
            )
        return data

    async def fetch(self, client: Optional[httpx.AsyncClient] = None) -> FetchOutcome:
        """
        Fetch usage from the API.

        Args:
            client: Optional HTTP client for connection reuse

        Returns:
            FetchOutcome with the parsed body, or the failure reason and status
        """
        try:
            token = load_access_token(self.config.credentials_file)

            if client is not None:
                data = await self._request(client, token)
            else:
                async with httpx.AsyncClient() as new_client:
                    data = await self._request(new_client, token)

        except QuotaFetchError as e:
            lib_logger.warning(f"Failed to fetch quota usage: {e.reason}")
            return FetchOutcome.failure(e.reason, e.status_code)
        except Exception as e:
            lib_logger.warning(f"Failed to fetch quota usage: {type(e).__name__}: {e}")
            return FetchOutcome.failure(TransportError().reason)

        lib_logger.debug(
            f"Quota usage: 5h={data.get('five_hour')}, 7d={data.get('seven_day')}"
        )
        return FetchOutcome.success(data)
