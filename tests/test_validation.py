"""Tests for stored and imported record validation."""

from datetime import datetime, timezone

import pytest

from timerapp.timers.models import TimerStatus, parse_timestamp
from timerapp.timers.validation import (
    HYDRATION_POLICY,
    IMPORT_POLICY,
    validate_categories,
    validate_log_record,
    validate_timer_record,
)


def test_runtime_state_is_discarded():
    result = validate_timer_record(
        {
            "id": 42,
            "name": "Focus",
            "duration": 1500,
            "category": "Work",
            "remainingTime": 12,
            "status": "running",
            "halfwayAlertTriggered": True,
            "completionAcknowledged": True,
            "isHalfwayAlertEnabled": 1,
            "createdAt": 1700000000000,
        },
        HYDRATION_POLICY,
    )

    snap = result.record
    assert result.ok
    assert snap.id == "42"
    assert snap.status == TimerStatus.IDLE
    assert snap.remaining_time == 1500
    assert snap.halfway_alert_triggered is False
    assert snap.completion_acknowledged is False
    assert snap.is_halfway_alert_enabled is True
    assert snap.created_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


@pytest.mark.parametrize("duration", [0, -5, "abc", 0.4, True])
def test_hydration_rejects_unusable_duration(duration):
    result = validate_timer_record({"id": "a", "name": "x", "duration": duration}, HYDRATION_POLICY)

    assert not result.ok
    assert "duration" in result.reason


@pytest.mark.parametrize("duration", [0, -5, "abc", None])
def test_import_defaults_unusable_duration(duration):
    result = validate_timer_record({"name": "x", "duration": duration}, IMPORT_POLICY)

    assert result.record.duration == 60
    assert result.record.remaining_time == 60


def test_missing_duration_defaults_on_hydration():
    result = validate_timer_record({"id": "a", "name": "x"}, HYDRATION_POLICY)
    assert result.record.duration == 60


def test_fractional_duration_truncates():
    result = validate_timer_record({"name": "x", "duration": "90.7"}, IMPORT_POLICY)
    assert result.record.duration == 90


def test_defaults_follow_policy():
    hydrated = validate_timer_record({"duration": 5}, HYDRATION_POLICY).record
    imported = validate_timer_record({"duration": 5, "name": "  "}, IMPORT_POLICY).record

    assert hydrated.name == "Unnamed Loaded Timer"
    assert hydrated.category == "Uncategorized"
    assert imported.name == "Imported Timer"
    assert imported.category == "Imported"
    assert hydrated.id and imported.id and hydrated.id != imported.id


def test_non_object_is_rejected():
    result = validate_timer_record(["not", "a", "timer"], IMPORT_POLICY)
    assert not result.ok
    assert "object" in result.reason


def test_log_defaults():
    result = validate_log_record({"completedAt": "2024-05-01T10:00:00Z", "duration": "x"})

    assert result.record.timer_name == "Unknown Logged Timer"
    assert result.record.duration == 0
    assert result.record.completed_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)


def test_categories_are_trimmed_and_deduplicated():
    assert validate_categories([" Gym ", "Gym", "", 3, "Reading"]) == ["Gym", "Reading"]
    assert validate_categories({"not": "a list"}) == []


@pytest.mark.parametrize(
    "value,expected",
    [
        (1700000000, datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)),
        ("1700000000000", datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)),
        ("2023-11-14T22:13:20", datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)),
        ("yesterday", None),
        (None, None),
        (False, None),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected
