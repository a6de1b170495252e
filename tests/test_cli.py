import json
from datetime import timedelta

import pytest
from rich.console import Console

from quota_app.main import format_result, main
from quota_app.quota_viewer import (
    build_statusline_segment,
    create_progress_bar,
    render_report,
    usage_color,
)
from quota_library.core.types import QuotaResult
from quota_library.payload import build_degraded, build_success
from quota_library.storage import QuotaCacheStore

from conftest import usage_body


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    base = tmp_path / "claude"
    for name in (
        "QUOTA_CACHE_FILE",
        "QUOTA_LOCK_FILE",
        "QUOTA_CREDENTIALS_FILE",
        "QUOTA_API_URL",
        "QUOTA_BETA",
        "QUOTA_FETCH_TIMEOUT",
        "QUOTA_TTL",
        "QUOTA_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(base))
    monkeypatch.setenv("QUOTA_ENV_FILE", str(tmp_path / "absent.env"))
    return base


def test_get_shell_format_serves_fresh_cache(cli_env, now, capsys):
    QuotaCacheStore(cli_env / "quota-data.json").write(build_success(usage_body(now), now))

    exit_code = main(["get", "--ttl", "3600", "--format", "shell"])

    lines = capsys.readouterr().out.strip().splitlines()
    assert exit_code == 0
    assert lines == [
        "pct=68",
        "weekly_pct=31",
        "resets_in=1h12m",
        "weekly_resets_in=4d2h",
        "stale=false",
        "valid=true",
    ]


def test_get_without_credentials_prints_degraded_json(cli_env, capsys):
    exit_code = main([])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload == {
        "pct": "",
        "weekly_pct": "",
        "resets_in": "",
        "weekly_resets_in": "",
        "stale": "true",
        "valid": "false",
    }


def test_check_without_credentials_fails(cli_env, capsys):
    assert main(["check"]) == 1
    assert "claude login" in capsys.readouterr().out


def test_check_with_credentials_passes(cli_env, capsys):
    cli_env.mkdir(parents=True)
    (cli_env / ".credentials.json").write_text(
        json.dumps({"claudeAiOauth": {"accessToken": "abc"}}), encoding="utf-8"
    )
    assert main(["check"]) == 0
    assert "OAuth token found" in capsys.readouterr().out


def test_show_without_cache(cli_env, capsys):
    assert main(["show"]) == 0
    out = capsys.readouterr().out
    assert "Claude quota" in out
    assert "No quota data cached yet" in out


def test_format_result():
    result = QuotaResult(pct="68", resets_in="1h12m", valid="true")
    assert json.loads(format_result(result, "json"))["pct"] == "68"
    shell = format_result(QuotaResult(), "shell")
    assert "pct=''" in shell.splitlines()


def test_statusline_segment_colors_and_markers():
    fresh = build_statusline_segment(QuotaResult(pct="40", resets_in="2h5m", valid="true"))
    assert fresh.plain == "5h:40% ↻2h5m"
    assert str(fresh.style) == "green"

    stale = build_statusline_segment(
        QuotaResult(pct="80", resets_in="10m", stale="true"), label="S"
    )
    assert stale.plain == "S:80%⚠ ↻10m"
    assert str(stale.style) == "red"

    assert build_statusline_segment(QuotaResult()).plain == ""


def test_usage_color_and_bar():
    assert usage_color(None) == "dim"
    assert usage_color(50) == "green"
    assert usage_color(60) == "yellow"
    assert usage_color(90) == "red"
    assert create_progress_bar(50, width=10) == "▓" * 5 + "░" * 5
    assert create_progress_bar(None, width=4) == "░░░░"


def test_render_report_for_stale_record(now):
    fresh = build_success(usage_body(now - timedelta(minutes=10)), now - timedelta(minutes=10))
    stale = build_degraded(
        fresh, now, "OAuth token rejected (HTTP 401). Re-authenticate Claude Code.", 401
    )
    console = Console(record=True, width=120)

    render_report(console, stale, now=now)

    text = console.export_text()
    assert "5-hour" in text
    assert "7-day" in text
    assert "Stale since" in text
    assert "1 consecutive failure" in text
    assert "OAuth token rejected (HTTP 401)" in text
