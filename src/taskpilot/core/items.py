"""Pure item domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum


class ItemType(str, Enum):
    """The six kinds of productivity item."""

    TASK = "Task"
    IDEA = "Idea"
    NOTE = "Note"
    REMINDER = "Reminder"
    FINANCIAL = "Financial"
    MEETING = "Meeting"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_DURATION_MINUTES = {
    Complexity.HIGH: 120,
    Complexity.MEDIUM: 60,
    Complexity.LOW: 30,
}


def as_utc(value: datetime | date | str | None) -> datetime | None:
    """
    Coerce a date, datetime or ISO string into an aware UTC datetime.

    Naive datetimes are taken as UTC. A bare date means midnight UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        if "T" not in text and " " not in text and len(text) == 10:
            value = date.fromisoformat(text)
        else:
            value = datetime.fromisoformat(text)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time(0, 0), tzinfo=timezone.utc)


@dataclass
class Subtask:
    id: str
    title: str
    completed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Subtask":
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            completed=bool(data.get("completed", False)),
        )


@dataclass
class Item:
    """A user-owned productivity item. Read-only to the engine."""

    id: str
    title: str
    type: str
    created_at: datetime
    completed: bool = False
    updated_at: datetime | None = None
    due: datetime | None = None
    start: datetime | None = None
    end: datetime | None = None
    subtasks: list[Subtask] = field(default_factory=list)
    summary: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.type, ItemType):
            self.type = self.type.value
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at)
        self.due = as_utc(self.due)
        self.start = as_utc(self.start)
        self.end = as_utc(self.end)

    @property
    def is_meeting(self) -> bool:
        return self.type == ItemType.MEETING.value

    @property
    def last_touched(self) -> datetime:
        """Last update timestamp, falling back to creation."""
        return self.updated_at or self.created_at

    def days_until_due(self, as_of: datetime) -> float | None:
        """Fractional days until due (negative if overdue)."""
        if not self.due:
            return None
        return (self.due - as_of).total_seconds() / 86400

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """Create Item from an exported JSON object (camelCase or snake_case)."""
        due = data.get("dueDateISO") or data.get("dueDate") or data.get("due_date") or data.get("due")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            type=data.get("type", ItemType.TASK.value),
            completed=bool(data.get("completed", False)),
            created_at=data.get("createdAt") or data.get("created_at"),
            updated_at=data.get("updatedAt") or data.get("updated_at"),
            due=due,
            start=data.get("startTime") or data.get("start"),
            end=data.get("endTime") or data.get("end"),
            subtasks=[Subtask.from_dict(s) for s in data.get("subtasks") or []],
            summary=data.get("summary"),
        )


def estimate_complexity(item: Item) -> Complexity:
    """
    Derive complexity from subtask count and title length.

    Pure function - no I/O.
    """
    subtask_count = len(item.subtasks)
    title_length = len(item.title)

    if subtask_count > 5 or (title_length > 100 and item.summary):
        return Complexity.HIGH
    if subtask_count > 2 or title_length > 50:
        return Complexity.MEDIUM
    return Complexity.LOW


def estimate_duration_minutes(complexity: Complexity) -> int:
    """Rough working time for an item of the given complexity."""
    return _DURATION_MINUTES[complexity]


def normalize_title(title: str) -> str:
    """Trimmed, case-insensitive form of a title used for grouping."""
    return title.strip().casefold()
