from datetime import datetime, timedelta, timezone

from quota_library.core.types import QuotaResult
from quota_library.payload import build_degraded, build_success
from quota_library.projector import format_pct, project
from quota_library.utils.time_format import format_utc

from conftest import usage_body

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_project_none_is_all_empty():
    result = project(None)
    assert result == QuotaResult()
    assert result.to_dict() == {
        "pct": "",
        "weekly_pct": "",
        "resets_in": "",
        "weekly_resets_in": "",
        "stale": "false",
        "valid": "false",
    }
    assert result.is_empty


def test_project_fresh_success_record():
    record = build_success(usage_body(NOW), NOW)

    result = project(record, now=NOW)

    assert result.to_dict() == {
        "pct": "68",
        "weekly_pct": "31",
        "resets_in": "1h12m",
        "weekly_resets_in": "4d2h",
        "stale": "false",
        "valid": "true",
    }


def test_project_renders_fractional_percentages():
    record = build_success(usage_body(NOW, session_pct=31.456, weekly_pct=0), NOW)
    result = project(record, now=NOW)
    assert result.pct == "31.46"
    assert result.weekly_pct == "0"


def test_project_recomputes_countdown_for_stale_record():
    previous = {
        "current_session": {
            "percent_used": 68,
            "resets_at": format_utc(NOW + timedelta(minutes=90)),
            "resets_in": "1h30m",
        },
        "valid": True,
    }
    degraded = build_degraded(previous, NOW, "Request failed (network error or timeout).")

    result = project(degraded, now=NOW + timedelta(minutes=30))

    assert result.resets_in == "1h0m"
    assert result.pct == "68"
    assert result.stale == "true"
    assert result.valid == "false"


def test_project_keeps_stored_countdown_for_fresh_record():
    record = build_success(usage_body(NOW), NOW)
    result = project(record, now=NOW + timedelta(minutes=30))
    assert result.resets_in == "1h12m"


def test_project_falls_back_to_legacy_flat_fields():
    record = {
        "quota_used_pct": 55,
        "weekly_used_pct": 20.5,
        "resets_in": "2h0m",
        "weekly_resets": "3d4h",
        "stale": True,
    }
    result = project(record, now=NOW)
    assert result.pct == "55"
    assert result.weekly_pct == "20.5"
    assert result.resets_in == "2h0m"
    assert result.weekly_resets_in == "3d4h"
    assert result.is_stale
    assert not result.is_valid


def test_project_ignores_non_object_records():
    assert project(["not", "a", "record"]) == QuotaResult()


def test_format_pct():
    assert format_pct(68.0) == "68"
    assert format_pct(12.5) == "12.5"
    assert format_pct(None) == ""
    assert format_pct(101) == ""
