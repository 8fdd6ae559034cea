"""Tests for core item logic."""

from datetime import date, datetime, timedelta, timezone

import pytest

from taskpilot.core.items import (
    Complexity,
    Item,
    ItemType,
    Subtask,
    as_utc,
    estimate_complexity,
    estimate_duration_minutes,
    normalize_title,
)


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def _subtasks(n: int) -> list[Subtask]:
    return [Subtask(id=str(i), title=f"step {i}") for i in range(n)]


class TestAsUtc:
    def test_none_and_empty(self):
        assert as_utc(None) is None
        assert as_utc("") is None

    def test_bare_date_is_midnight_utc(self):
        assert as_utc(date(2025, 1, 15)) == datetime(2025, 1, 15, tzinfo=timezone.utc)

    def test_date_string_is_midnight_utc(self):
        assert as_utc("2025-01-15") == datetime(2025, 1, 15, tzinfo=timezone.utc)

    def test_z_suffix(self):
        assert as_utc("2025-01-15T10:30:00Z") == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_naive_datetime_taken_as_utc(self):
        result = as_utc(datetime(2025, 1, 15, 10, 30))
        assert result.tzinfo == timezone.utc
        assert result.hour == 10

    def test_offset_converted_to_utc(self):
        result = as_utc("2025-01-15T10:30:00+02:00")
        assert result == datetime(2025, 1, 15, 8, 30, tzinfo=timezone.utc)

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            as_utc("next tuesday")


class TestItem:
    def test_normalizes_type_and_timestamps(self):
        item = Item(id="1", title="t", type=ItemType.MEETING, created_at="2025-01-01")
        assert item.type == "Meeting"
        assert item.is_meeting
        assert item.created_at == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_last_touched_falls_back_to_created(self, now):
        item = Item(id="1", title="t", type="Task", created_at=now)
        assert item.last_touched == now
        item.updated_at = now + timedelta(days=1)
        assert item.last_touched == now + timedelta(days=1)

    def test_days_until_due(self, now):
        item = Item(id="1", title="t", type="Task", created_at=now, due=now + timedelta(hours=36))
        assert item.days_until_due(now) == pytest.approx(1.5)

    def test_days_until_due_without_due(self, now):
        assert Item(id="1", title="t", type="Task", created_at=now).days_until_due(now) is None

    def test_from_dict_camel_case(self):
        item = Item.from_dict(
            {
                "id": 7,
                "title": "Pay rent",
                "type": "Financial",
                "createdAt": "2025-01-01T08:00:00Z",
                "dueDateISO": "2025-02-01",
                "subtasks": [{"id": "a", "title": "transfer", "completed": True}],
            }
        )
        assert item.id == "7"
        assert item.type == "Financial"
        assert item.due == datetime(2025, 2, 1, tzinfo=timezone.utc)
        assert item.subtasks[0].completed is True

    def test_from_dict_snake_case_defaults(self):
        item = Item.from_dict(
            {"id": "1", "title": "Standup", "created_at": "2025-01-01", "start": "2025-01-02T10:00:00"}
        )
        assert item.type == "Task"
        assert item.completed is False
        assert item.start == datetime(2025, 1, 2, 10, tzinfo=timezone.utc)


class TestComplexity:
    def test_short_title_no_subtasks_is_low(self, now):
        assert estimate_complexity(Item("1", "Buy milk", "Task", now)) == Complexity.LOW

    def test_three_subtasks_is_medium(self, now):
        item = Item("1", "Plan", "Task", now, subtasks=_subtasks(3))
        assert estimate_complexity(item) == Complexity.MEDIUM

    def test_long_title_is_medium(self, now):
        assert estimate_complexity(Item("1", "x" * 51, "Task", now)) == Complexity.MEDIUM

    def test_six_subtasks_is_high(self, now):
        item = Item("1", "Plan", "Task", now, subtasks=_subtasks(6))
        assert estimate_complexity(item) == Complexity.HIGH

    def test_very_long_title_with_summary_is_high(self, now):
        item = Item("1", "x" * 101, "Task", now, summary="details")
        assert estimate_complexity(item) == Complexity.HIGH

    def test_very_long_title_without_summary_is_medium(self, now):
        assert estimate_complexity(Item("1", "x" * 101, "Task", now)) == Complexity.MEDIUM

    def test_duration_by_complexity(self):
        assert estimate_duration_minutes(Complexity.HIGH) == 120
        assert estimate_duration_minutes(Complexity.MEDIUM) == 60
        assert estimate_duration_minutes(Complexity.LOW) == 30


def test_normalize_title():
    assert normalize_title("  Weekly Report ") == normalize_title("weekly report")
