"""Pure pattern mining over a user's items - no I/O dependencies."""

import math
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum

from .items import Item, normalize_title

MINUTES_PER_BATCHED_ITEM = 30
POSTPONEMENT_DAYS = 7


class PatternType(str, Enum):
    RECURRING = "recurring"
    BATCH = "batch"
    POSTPONEMENT = "postponement"
    PERFORMANCE = "performance"


CONFIDENCE_CAPS = {
    PatternType.RECURRING: 0.95,
    PatternType.BATCH: 0.85,
    PatternType.POSTPONEMENT: 0.90,
    PatternType.PERFORMANCE: 0.80,
}


@dataclass
class RecurringPattern:
    task_title: str
    frequency: int
    average_days_between: float
    last_occurrence: datetime
    suggested_recurrence: str  # daily | weekly | monthly


@dataclass
class BatchOpportunity:
    category: str
    task_count: int
    estimated_time: int  # minutes
    suggested_time_block: str  # morning | afternoon


@dataclass
class PostponementPattern:
    task_id: str
    task_title: str
    postponement_count: int
    average_postponement_days: float
    suggested_action: str  # break_down | schedule_block


@dataclass
class PerformancePattern:
    task_type: str
    best_time_slot: str
    completion_rate: float
    average_completion_minutes: float | None


PatternData = RecurringPattern | BatchOpportunity | PostponementPattern | PerformancePattern


@dataclass
class Suggestion:
    id: str
    title: str
    description: str
    impact: str  # low | medium | high


@dataclass
class DetectedPattern:
    pattern_type: PatternType
    pattern_data: PatternData
    confidence: float
    suggestion: Suggestion

    def data_dict(self) -> dict:
        """Pattern data as JSON-ready primitives."""
        data = asdict(self.pattern_data)
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
        return data

    def to_dict(self) -> dict:
        return {
            "pattern_type": self.pattern_type.value,
            "pattern_data": self.data_dict(),
            "confidence": self.confidence,
            "suggestion": asdict(self.suggestion),
        }


@dataclass
class PatternSuggestion:
    """Stored suggestion record, accepted or dismissed later by the user."""

    id: str
    user_id: str
    suggestion_type: str
    title: str
    description: str
    action_data: dict
    impact: str
    created_at: datetime
    is_accepted: bool = False
    is_dismissed: bool = False

    @property
    def is_active(self) -> bool:
        return not (self.is_accepted or self.is_dismissed)

    @classmethod
    def from_pattern(cls, user_id: str, pattern: DetectedPattern, created_at: datetime) -> "PatternSuggestion":
        return cls(
            id=pattern.suggestion.id,
            user_id=user_id,
            suggestion_type=pattern.pattern_type.value,
            title=pattern.suggestion.title,
            description=pattern.suggestion.description,
            action_data=pattern.data_dict(),
            impact=pattern.suggestion.impact,
            created_at=created_at,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PatternSuggestion":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            suggestion_type=data["suggestion_type"],
            title=data["title"],
            description=data["description"],
            action_data=data.get("action_data") or {},
            impact=data["impact"],
            created_at=datetime.fromisoformat(data["created_at"]),
            is_accepted=bool(data.get("is_accepted", False)),
            is_dismissed=bool(data.get("is_dismissed", False)),
        )


def _capped(pattern_type: PatternType, value: float) -> float:
    return max(0.0, min(value, CONFIDENCE_CAPS[pattern_type]))


def _days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 86400


def _suggestion_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def _group(items: list[Item], key) -> dict[str, list[Item]]:
    groups: dict[str, list[Item]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def classify_recurrence(average_days: float) -> str:
    if average_days <= 2:
        return "daily"
    if average_days <= 10:
        return "weekly"
    return "monthly"


def detect_recurring(items: list[Item], min_occurrences: int = 3) -> list[DetectedPattern]:
    """
    Titles that keep coming back are candidates for a recurring item.

    Pure function - no I/O.
    """
    patterns = []

    for title, group in _group(items, lambda i: normalize_title(i.title)).items():
        if not title or len(group) < min_occurrences:
            continue

        dates = sorted(i.created_at for i in group if i.created_at)
        if len(dates) < 2:
            continue

        gaps = [_days_between(a, b) for a, b in zip(dates, dates[1:])]
        average = sum(gaps) / len(gaps)
        recurrence = classify_recurrence(average)
        frequency = len(group)

        patterns.append(
            DetectedPattern(
                pattern_type=PatternType.RECURRING,
                pattern_data=RecurringPattern(
                    task_title=title,
                    frequency=frequency,
                    average_days_between=average,
                    last_occurrence=dates[-1],
                    suggested_recurrence=recurrence,
                ),
                confidence=_capped(PatternType.RECURRING, frequency / 10),
                suggestion=Suggestion(
                    id=_suggestion_id("recurring"),
                    title=f'Create a recurring item: "{title}"',
                    description=(
                        f"This item appeared {frequency} times, about {round(average)} days apart. "
                        f"Consider making it a {recurrence} recurring item."
                    ),
                    impact="high" if frequency > 5 else "medium",
                ),
            )
        )

    return patterns


def detect_batch(items: list[Item], min_occurrences: int = 3) -> list[DetectedPattern]:
    """
    Pending items of one type with deadlines can be processed together.

    Pure function - no I/O.
    """
    patterns = []
    pending = [i for i in items if not i.completed]

    for item_type, group in _group(pending, lambda i: i.type).items():
        if len(group) < min_occurrences:
            continue
        if sum(1 for i in group if i.due) < 2:
            continue

        count = len(group)
        estimated = count * MINUTES_PER_BATCHED_ITEM

        patterns.append(
            DetectedPattern(
                pattern_type=PatternType.BATCH,
                pattern_data=BatchOpportunity(
                    category=item_type,
                    task_count=count,
                    estimated_time=estimated,
                    suggested_time_block="afternoon" if estimated > 90 else "morning",
                ),
                confidence=_capped(PatternType.BATCH, count / 5),
                suggestion=Suggestion(
                    id=_suggestion_id("batch"),
                    title=f"Batch {count} pending {item_type} items",
                    description=(
                        f'You have {count} pending items of type "{item_type}". '
                        f"Consider a {estimated / 60:.1f}-hour block to process them together."
                    ),
                    impact="high" if estimated > 120 else "medium",
                ),
            )
        )

    return patterns


def detect_postponement(items: list[Item]) -> list[DetectedPattern]:
    """
    Pending items touched long after creation are being put off.

    Pure function - no I/O.
    """
    patterns = []

    for item in items:
        if item.completed or not item.created_at:
            continue
        days = _days_between(item.created_at, item.last_touched)
        if days <= POSTPONEMENT_DAYS:
            continue

        has_subtasks = bool(item.subtasks)
        if has_subtasks:
            advice = "Consider blocking dedicated time for it."
        else:
            advice = "Consider breaking it down into smaller subtasks."

        patterns.append(
            DetectedPattern(
                pattern_type=PatternType.POSTPONEMENT,
                pattern_data=PostponementPattern(
                    task_id=item.id,
                    task_title=item.title,
                    postponement_count=math.floor(days / POSTPONEMENT_DAYS),
                    average_postponement_days=days,
                    suggested_action="schedule_block" if has_subtasks else "break_down",
                ),
                confidence=_capped(PatternType.POSTPONEMENT, days / 30),
                suggestion=Suggestion(
                    id=f"postponement-{item.id}",
                    title=f'Review postponed item: "{item.title}"',
                    description=f"This item has been pending for {round(days)} days. {advice}",
                    impact="high" if days > 30 else "medium",
                ),
            )
        )

    return patterns


def detect_performance(items: list[Item], min_occurrences: int = 3) -> list[DetectedPattern]:
    """
    Completion rate per item type.

    Pure function - no I/O. The best time slot is a fixed placeholder
    until completion timestamps carry time-of-day information.
    """
    patterns = []
    completed = [i for i in items if i.completed]
    totals = _group(items, lambda i: i.type)

    for item_type, group in _group(completed, lambda i: i.type).items():
        if len(group) < min_occurrences:
            continue

        rate = len(group) / max(len(totals.get(item_type, [])), 1)
        durations = [
            _days_between(i.created_at, i.updated_at) * 24 * 60
            for i in group
            if i.created_at and i.updated_at
        ]
        average_minutes = sum(durations) / len(durations) if durations else None
        best_slot = "morning"

        patterns.append(
            DetectedPattern(
                pattern_type=PatternType.PERFORMANCE,
                pattern_data=PerformancePattern(
                    task_type=item_type,
                    best_time_slot=best_slot,
                    completion_rate=rate,
                    average_completion_minutes=average_minutes,
                ),
                confidence=_capped(PatternType.PERFORMANCE, len(group) / 10),
                suggestion=Suggestion(
                    id=_suggestion_id(f"performance-{item_type}"),
                    title=f'Optimize how you handle "{item_type}" items',
                    description=(
                        f'You complete {round(rate * 100)}% of your "{item_type}" items. '
                        f"Keep working on them in the {best_slot} to stay productive."
                    ),
                    impact="medium" if rate > 0.7 else "low",
                ),
            )
        )

    return patterns


def filter_significant(patterns: list[DetectedPattern], threshold: float) -> list[DetectedPattern]:
    """Patterns with enough evidence to surface."""
    return [p for p in patterns if p.confidence >= threshold]
