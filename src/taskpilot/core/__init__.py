"""Functional core - pure business logic with no I/O."""

from .items import Item, ItemType, Subtask, Complexity, estimate_complexity, normalize_title
from .priority import PrioritizedTask, PrioritizationResult, TaskAnalysis, rank_by_rules
from .patterns import DetectedPattern, PatternType, Suggestion
from .conflicts import CalendarItem, ConflictType, DetectedConflict, Severity, TimeWindow

__all__ = [
    # Items
    "Item",
    "ItemType",
    "Subtask",
    "Complexity",
    "estimate_complexity",
    "normalize_title",
    # Priority
    "PrioritizedTask",
    "PrioritizationResult",
    "TaskAnalysis",
    "rank_by_rules",
    # Patterns
    "DetectedPattern",
    "PatternType",
    "Suggestion",
    # Conflicts
    "CalendarItem",
    "ConflictType",
    "DetectedConflict",
    "Severity",
    "TimeWindow",
]
