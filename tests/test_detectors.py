"""Tests for the pattern and conflict detector services."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from taskpilot.conflict_detector import ConflictDetector, ConflictRequest
from taskpilot.core.conflicts import ConflictType, Severity, TimeWindow
from taskpilot.core.items import Item, Subtask
from taskpilot.core.patterns import PatternSuggestion, PatternType
from taskpilot.fanout import gather_isolated
from taskpilot.pattern_detector import PatternDetector


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def habit_items(now):
    """Seven daily 'Gym' items plus one long-postponed task."""
    items = [
        Item(id=f"g{i}", title="Gym", type="Task", created_at=now - timedelta(days=i), completed=True)
        for i in range(7)
    ]
    items.append(
        Item(id="p", title="Clean garage", type="Task", created_at=now - timedelta(days=40), updated_at=now)
    )
    return items


class TestGatherIsolated:
    def test_concatenates_in_job_order(self):
        result = asyncio.run(gather_isolated({"a": lambda: [1, 2], "b": lambda: [], "c": lambda: [3]}))
        assert result == [1, 2, 3]

    def test_failed_job_contributes_nothing(self, caplog):
        def boom():
            raise RuntimeError("detector bug")

        result = asyncio.run(gather_isolated({"ok": lambda: ["x"], "bad": boom}, context="user u1"))
        assert result == ["x"]
        assert "Detector 'bad' failed (user u1)" in caplog.text


class TestPatternDetector:
    def test_filters_by_confidence(self, habit_items, now):
        detector = PatternDetector(clock=lambda: now)
        patterns = asyncio.run(detector.detect("u1", habit_items))
        types = {p.pattern_type for p in patterns}
        # recurring 7/10 = 0.7, postponement 40/30 capped at 0.9, performance 7/10 = 0.7
        assert types == {PatternType.RECURRING, PatternType.POSTPONEMENT, PatternType.PERFORMANCE}
        assert all(p.confidence >= 0.6 for p in patterns)

    def test_higher_threshold_keeps_fewer(self, habit_items, now):
        detector = PatternDetector(confidence_threshold=0.8, clock=lambda: now)
        patterns = asyncio.run(detector.detect("u1", habit_items))
        assert [p.pattern_type for p in patterns] == [PatternType.POSTPONEMENT]

    def test_stores_pattern_and_suggestion(self, habit_items, now):
        store = MagicMock()
        detector = PatternDetector(store=store, confidence_threshold=0.8, clock=lambda: now)
        asyncio.run(detector.detect("u1", habit_items))

        store.upsert_pattern.assert_called_once()
        user_id, pattern_type, data = store.upsert_pattern.call_args.args
        assert (user_id, pattern_type) == ("u1", "postponement")
        assert data["last_updated"] == now.isoformat()
        assert data["pattern_data"]["task_id"] == "p"

        suggestion = store.store_suggestion.call_args.args[0]
        assert isinstance(suggestion, PatternSuggestion)
        assert suggestion.id == "postponement-p"
        assert suggestion.user_id == "u1"

    def test_storage_failure_does_not_fail_detection(self, habit_items, now):
        store = MagicMock()
        store.upsert_pattern.side_effect = OSError("read-only")
        detector = PatternDetector(store=store, clock=lambda: now)
        patterns = asyncio.run(detector.detect("u1", habit_items))
        assert len(patterns) == 3
        assert store.store_suggestion.call_count == 3

    def test_run_reports_stored_suggestions(self, habit_items, now):
        store = MagicMock()
        store.store_suggestion.side_effect = [None, OSError("full"), None]
        run = asyncio.run(PatternDetector(store=store, clock=lambda: now).run("u1", habit_items))
        assert len(run.patterns) == 3
        assert run.suggestions_stored == 2

    def test_run_without_store_stores_nothing(self, habit_items, now):
        run = asyncio.run(PatternDetector(clock=lambda: now).run("u1", habit_items))
        assert run.suggestions_stored == 0

    @patch("taskpilot.pattern_detector.detect_recurring")
    def test_failing_detector_isolated(self, mock_recurring, habit_items, now):
        mock_recurring.side_effect = RuntimeError("bug")
        patterns = asyncio.run(PatternDetector(clock=lambda: now).detect("u1", habit_items))
        assert PatternType.RECURRING not in {p.pattern_type for p in patterns}
        assert PatternType.POSTPONEMENT in {p.pattern_type for p in patterns}

    def test_empty_items(self):
        assert asyncio.run(PatternDetector().detect("u1", [])) == []

    def test_none_items_raise(self):
        with pytest.raises(ValueError):
            asyncio.run(PatternDetector().detect("u1", None))

    def test_suggestion_lifecycle_delegates_to_store(self):
        store = MagicMock()
        store.mark_suggestion.return_value = True
        store.list_active_suggestions.return_value = ["s1", "s2", "s3"]
        detector = PatternDetector(store=store)

        assert detector.accept_suggestion("s1") is True
        store.mark_suggestion.assert_called_with("s1", accepted=True)
        assert detector.dismiss_suggestion("s2") is True
        store.mark_suggestion.assert_called_with("s2", accepted=False)
        assert detector.recent_suggestions("u1", limit=2) == ["s1", "s2"]

    def test_lifecycle_without_store(self):
        detector = PatternDetector()
        assert detector.recent_suggestions("u1") == []
        assert detector.accept_suggestion("s1") is False


class TestConflictDetector:
    @pytest.fixture
    def meetings(self, now):
        return [
            Item(id="m1", title="Standup", type="Meeting", created_at=now,
                 start=now.replace(hour=10), end=now.replace(hour=11)),
            Item(id="m2", title="Review", type="Meeting", created_at=now,
                 start=now.replace(hour=11), end=now.replace(hour=12)),
        ]

    def test_no_conflicts(self, meetings, now):
        detector = ConflictDetector(clock=lambda: now)
        assert asyncio.run(detector.detect(ConflictRequest("u1"), meetings)) == []

    def test_new_item_checked_against_existing(self, meetings, now):
        new_item = Item(id="new", title="1:1", type="Meeting", created_at=now,
                        start=now.replace(hour=10, minute=30), end=now.replace(hour=11, minute=30))
        store = MagicMock()
        detector = ConflictDetector(store=store, clock=lambda: now)
        conflicts = asyncio.run(detector.detect(ConflictRequest("u1", new_item=new_item), meetings))

        assert len(conflicts) == 2
        assert all(c.conflict_type == ConflictType.SCHEDULING for c in conflicts)
        assert all(c.user_id == "u1" for c in conflicts)
        assert all("new" in {i.id for i in c.conflicting_items} for c in conflicts)
        assert store.store_conflict.call_count == 2
        assert store.store_conflict.call_args.args[0] == "u1"

    def test_window_excludes_outside_items(self, meetings, now):
        later = [
            Item(id=f"x{i}", title="x", type="Meeting", created_at=now,
                 start=now.replace(hour=10) + timedelta(days=3), end=now.replace(hour=12) + timedelta(days=3))
            for i in range(2)
        ]
        window = TimeWindow(start=now, end=now + timedelta(days=1))
        detector = ConflictDetector(clock=lambda: now)
        conflicts = asyncio.run(detector.detect(ConflictRequest("u1", window=window), meetings + later))
        assert conflicts == []

    def test_overload_threshold_is_configurable(self, now):
        items = [
            Item(id=str(i), title="Big", type="Task", created_at=now, due=now.replace(hour=17),
                 subtasks=[Subtask(id=str(n), title="s") for n in range(6)])
            for i in range(4)
        ]
        default = asyncio.run(ConflictDetector(clock=lambda: now).detect(ConflictRequest("u1"), items))
        strict = asyncio.run(
            ConflictDetector(critical_high_complexity=3, clock=lambda: now).detect(ConflictRequest("u1"), items)
        )
        assert [c.severity for c in default] == [Severity.WARNING]
        assert [c.severity for c in strict] == [Severity.CRITICAL]

    def test_storage_failure_swallowed(self, meetings, now):
        new_item = Item(id="new", title="1:1", type="Meeting", created_at=now,
                        start=now.replace(hour=10, minute=30), end=now.replace(hour=10, minute=45))
        store = MagicMock()
        store.store_conflict.side_effect = OSError("nope")
        detector = ConflictDetector(store=store, clock=lambda: now)
        conflicts = asyncio.run(detector.detect(ConflictRequest("u1", new_item=new_item), meetings))
        assert len(conflicts) == 1

    def test_none_items_raise(self):
        with pytest.raises(ValueError):
            asyncio.run(ConflictDetector().detect(ConflictRequest("u1"), None))

    def test_unresolved_conflicts_delegates_to_store(self):
        store = MagicMock()
        store.list_unresolved_conflicts.return_value = [{"id": "c1"}]
        assert ConflictDetector(store=store).unresolved_conflicts("u1") == [{"id": "c1"}]
        store.list_unresolved_conflicts.assert_called_once_with("u1")

    def test_unresolved_conflicts_without_store(self):
        assert ConflictDetector().unresolved_conflicts("u1") == []

    def test_resolve_delegates_to_store(self):
        store = MagicMock()
        store.resolve_conflict.return_value = False
        assert ConflictDetector(store=store).resolve_conflict("c1") is False
        store.resolve_conflict.assert_called_once_with("c1")
