import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from quota_library.config import QuotaConfig
from quota_library.core.types import FetchOutcome
from quota_library.fetcher import UsageFetcher
from quota_library.utils.time_format import format_utc


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def quota_config(tmp_path):
    return QuotaConfig.for_directory(tmp_path / "claude")


@pytest.fixture
def write_credentials(quota_config):
    def _write(token="test-token"):
        quota_config.credentials_file.parent.mkdir(parents=True, exist_ok=True)
        quota_config.credentials_file.write_text(
            json.dumps({"claudeAiOauth": {"accessToken": token}}), encoding="utf-8"
        )
        return quota_config.credentials_file

    return _write


def usage_body(now, session_pct=68.0, weekly_pct=31):
    return {
        "five_hour": {
            "utilization": session_pct,
            "resets_at": format_utc(now + timedelta(minutes=72)),
        },
        "seven_day": {
            "utilization": weekly_pct,
            "resets_at": format_utc(now + timedelta(days=4, hours=2)),
        },
        "extra_usage": None,
    }


class StubFetcher:
    """Fetcher double that returns queued outcomes and counts calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def fetch(self, client=None):
        self.calls += 1
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


class TransportFetcher(UsageFetcher):
    """Real UsageFetcher routed through an httpx.MockTransport handler."""

    def __init__(self, config, handler):
        super().__init__(config)
        self.handler = handler

    async def fetch(self, client=None):
        async with httpx.AsyncClient(transport=httpx.MockTransport(self.handler)) as mock_client:
            return await super().fetch(mock_client)


@pytest.fixture
def success_outcome(now):
    return FetchOutcome.success(usage_body(now))
