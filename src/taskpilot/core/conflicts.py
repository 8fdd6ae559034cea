"""Pure conflict detection over a calendar view of items - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from .items import Complexity, Item, ItemType, estimate_complexity

RESCHEDULE_GAP = timedelta(minutes=30)
OVERLOAD_HIGH_COMPLEXITY = 3
OVERLOAD_TOTAL = 8
DEADLINE_HORIZON_DAYS = 2
DEADLINE_MEETING_COUNT = 3
MAX_RESCHEDULE_SUGGESTIONS = 3


class ConflictType(str, Enum):
    SCHEDULING = "scheduling"
    OVERLOAD = "overload"
    DEADLINE = "deadline"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class CalendarItem:
    """Uniform calendar view of an item."""

    id: str
    title: str
    type: str
    complexity: Complexity
    completed: bool = False
    start: datetime | None = None
    end: datetime | None = None
    due: datetime | None = None

    @property
    def is_meeting(self) -> bool:
        return self.type == ItemType.MEETING.value

    @property
    def is_timed(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def anchor(self) -> datetime | None:
        """The moment that places this item on a day: due date, else start."""
        return self.due or self.start

    def overlaps(self, other: "CalendarItem") -> bool:
        """Open-interval overlap; touching endpoints do not conflict."""
        return self.start < other.end and other.start < self.end

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "complexity": self.complexity.value,
            "completed": self.completed,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "due": self.due.isoformat() if self.due else None,
        }


@dataclass
class ConflictSuggestion:
    action: str  # reschedule | delegate | extend
    details: dict
    impact: str

    def to_dict(self) -> dict:
        return {"action": self.action, "details": dict(self.details), "impact": self.impact}


@dataclass
class DetectedConflict:
    conflict_type: ConflictType
    severity: Severity
    description: str
    conflicting_items: list[CalendarItem]
    suggestions: list[ConflictSuggestion]
    detected_at: datetime
    user_id: str = ""
    is_resolved: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "conflict_type": self.conflict_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "conflicting_items": [i.to_dict() for i in self.conflicting_items],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "is_resolved": self.is_resolved,
            "detected_at": self.detected_at.isoformat(),
        }


@dataclass
class TimeWindow:
    start: datetime
    end: datetime

    def contains(self, dt: datetime) -> bool:
        return self.start <= dt <= self.end


def to_calendar_item(item: Item) -> CalendarItem:
    return CalendarItem(
        id=item.id,
        title=item.title,
        type=item.type,
        complexity=estimate_complexity(item),
        completed=item.completed,
        start=item.start,
        end=item.end,
        due=item.due,
    )


def restrict_to_window(items: list[CalendarItem], window: TimeWindow | None) -> list[CalendarItem]:
    """Keep items anchored inside the window. No window keeps everything."""
    if window is None:
        return list(items)
    return [i for i in items if i.anchor is not None and window.contains(i.anchor)]


def _day_key(dt: datetime) -> date:
    return dt.date()


def _iso(dt: datetime) -> str:
    return dt.isoformat()


# ============== Scheduling ==============


def find_overlaps(items: list[CalendarItem]) -> list[tuple[CalendarItem, CalendarItem]]:
    """
    Find overlapping timed items.

    Returns (earlier, later) pairs. Pure function - no I/O.
    """
    pairs = []
    timed = sorted((i for i in items if i.is_timed), key=lambda i: i.start)

    for index, first in enumerate(timed):
        for second in timed[index + 1 :]:
            # Sorted by start: nothing later can overlap once one starts after first ends
            if second.start >= first.end:
                break
            if first.overlaps(second):
                pairs.append((first, second))

    return pairs


def scheduling_suggestions(first: CalendarItem, second: CalendarItem) -> list[ConflictSuggestion]:
    return [
        ConflictSuggestion(
            action="reschedule",
            details={
                "item_id": second.id,
                "item_title": second.title,
                "suggested_time": _iso(first.end + RESCHEDULE_GAP),
            },
            impact="high",
        ),
        ConflictSuggestion(
            action="reschedule",
            details={
                "item_id": first.id,
                "item_title": first.title,
                "suggested_time": _iso(second.end + RESCHEDULE_GAP),
            },
            impact="medium",
        ),
    ]


def check_scheduling(items: list[CalendarItem], now: datetime) -> list[DetectedConflict]:
    return [
        DetectedConflict(
            conflict_type=ConflictType.SCHEDULING,
            severity=Severity.CRITICAL,
            description=f'Scheduling conflict between "{first.title}" and "{second.title}"',
            conflicting_items=[first, second],
            suggestions=scheduling_suggestions(first, second),
            detected_at=now,
        )
        for first, second in find_overlaps(items)
    ]


# ============== Overload ==============


def group_by_day(items: list[CalendarItem]) -> dict[date, list[CalendarItem]]:
    days: dict[date, list[CalendarItem]] = {}
    for item in items:
        if item.anchor is None:
            continue
        days.setdefault(_day_key(item.anchor), []).append(item)
    return days


def overload_suggestions(day_items: list[CalendarItem], now: datetime) -> list[ConflictSuggestion]:
    suggestions = []

    delegatable = [
        i
        for i in day_items
        if i.type == ItemType.TASK.value and i.complexity == Complexity.LOW and not i.completed
    ]
    if delegatable:
        suggestions.append(
            ConflictSuggestion(
                action="delegate",
                details={"tasks": [{"id": i.id, "title": i.title} for i in delegatable]},
                impact="high",
            )
        )

    horizon = now + timedelta(days=DEADLINE_HORIZON_DAYS)
    movable = [i for i in day_items if i.due and i.due > horizon]
    if movable:
        suggestions.append(
            ConflictSuggestion(
                action="reschedule",
                details={
                    "tasks": [
                        {"id": i.id, "title": i.title, "suggested_date": _iso(horizon)}
                        for i in movable[:MAX_RESCHEDULE_SUGGESTIONS]
                    ]
                },
                impact="medium",
            )
        )

    return suggestions


def check_overload(
    items: list[CalendarItem],
    now: datetime,
    critical_high_complexity: int = 4,
) -> list[DetectedConflict]:
    """
    Days with too many complex items, or too many items overall.

    Pure function - no I/O.
    """
    conflicts = []

    for day, day_items in sorted(group_by_day(items).items()):
        complex_count = sum(1 for i in day_items if i.complexity == Complexity.HIGH)
        if complex_count <= OVERLOAD_HIGH_COMPLEXITY and len(day_items) <= OVERLOAD_TOTAL:
            continue

        severity = Severity.CRITICAL if complex_count > critical_high_complexity else Severity.WARNING
        conflicts.append(
            DetectedConflict(
                conflict_type=ConflictType.OVERLOAD,
                severity=severity,
                description=(
                    f"Overload on {day.isoformat()}: {len(day_items)} items "
                    f"({complex_count} complex)"
                ),
                conflicting_items=list(day_items),
                suggestions=overload_suggestions(day_items, now),
                detected_at=now,
            )
        )

    return conflicts


# ============== Deadline ==============


def deadline_suggestions(item: CalendarItem) -> list[ConflictSuggestion]:
    return [
        ConflictSuggestion(
            action="extend",
            details={
                "task_id": item.id,
                "task_title": item.title,
                "suggested_new_deadline": _iso(item.due + timedelta(days=2)),
                "reason": "The due date is packed with meetings",
            },
            impact="medium",
        ),
        ConflictSuggestion(
            action="reschedule",
            details={
                "task_id": item.id,
                "task_title": item.title,
                "suggested_work_date": _iso(item.due - timedelta(days=1)),
                "reason": "Finish before the meeting-heavy day",
            },
            impact="high",
        ),
    ]


def check_deadlines(items: list[CalendarItem], now: datetime) -> list[DetectedConflict]:
    """
    Near deadlines that land on a day full of meetings.

    Pure function - no I/O.
    """
    conflicts = []
    meetings_by_day: dict[date, list[CalendarItem]] = {}
    for item in items:
        if item.is_meeting and item.start:
            meetings_by_day.setdefault(_day_key(item.start), []).append(item)

    for item in items:
        if not item.due:
            continue
        days_until = (item.due - now).total_seconds() / 86400
        if not 0 < days_until <= DEADLINE_HORIZON_DAYS:
            continue

        meetings = [m for m in meetings_by_day.get(_day_key(item.due), []) if m is not item]
        if len(meetings) < DEADLINE_MEETING_COUNT:
            continue

        conflicts.append(
            DetectedConflict(
                conflict_type=ConflictType.DEADLINE,
                severity=Severity.WARNING,
                description=(
                    f'Deadline for "{item.title}" falls on a day with {len(meetings)} meetings'
                ),
                conflicting_items=[item, *meetings],
                suggestions=deadline_suggestions(item),
                detected_at=now,
            )
        )

    return conflicts
