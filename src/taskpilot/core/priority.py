"""Pure prioritization logic - rule-based scoring and AI response validation."""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .items import Complexity, Item, ItemType, estimate_complexity, estimate_duration_minutes

WEIGHT_URGENCY = 0.35
WEIGHT_COMPLEXITY = 0.25
WEIGHT_TIME_FIT = 0.20
WEIGHT_TYPE = 0.10
WEIGHT_PERFORMANCE = 0.10

# No per-user signal exists yet, so the performance factor is neutral.
NEUTRAL_PERFORMANCE = 0.5
RULE_CONFIDENCE = 0.7

HIGH_PRIORITY_THRESHOLD = 0.7
MEDIUM_PRIORITY_THRESHOLD = 0.4

TYPE_PRIORITY = {
    ItemType.MEETING.value: 1.0,
    ItemType.TASK.value: 0.9,
    ItemType.REMINDER.value: 0.8,
    ItemType.FINANCIAL.value: 0.7,
    ItemType.IDEA.value: 0.4,
    ItemType.NOTE.value: 0.3,
}
UNKNOWN_TYPE_PRIORITY = 0.5

COMPLEXITY_SCORE = {
    Complexity.HIGH: 0.9,
    Complexity.MEDIUM: 0.6,
    Complexity.LOW: 0.3,
}

GENERIC_REASON = "Priority based on general context analysis"

METHOD_AI = "ai"
METHOD_RULES = "rules"


class InvalidResponseError(ValueError):
    """Raised when a generated prioritization does not match the contract."""


@dataclass
class PrioritizedTask:
    item_id: str
    priority_score: float
    rank: int
    reasoning: list[str]
    confidence: float

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "priority_score": self.priority_score,
            "rank": self.rank,
            "reasoning": list(self.reasoning),
            "confidence": self.confidence,
        }


@dataclass
class PrioritizationResult:
    prioritized_tasks: list[PrioritizedTask]
    justification: str
    confidence: float
    method: str = METHOD_RULES

    def to_dict(self) -> dict:
        return {
            "prioritized_tasks": [t.to_dict() for t in self.prioritized_tasks],
            "justification": self.justification,
            "confidence": self.confidence,
            "method": self.method,
        }


@dataclass
class PriorityFactor:
    name: str
    weight: float
    impact: str
    description: str


@dataclass
class TaskAnalysis:
    """Archived analysis of one prioritized item."""

    item_id: str
    user_id: str
    priority_score: float
    recommended_order: int
    confidence: float
    method: str
    created_at: datetime
    factors: list[PriorityFactor] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "user_id": self.user_id,
            "priority_score": self.priority_score,
            "recommended_order": self.recommended_order,
            "confidence": self.confidence,
            "method": self.method,
            "created_at": self.created_at.isoformat(),
            "factors": [
                {
                    "name": f.name,
                    "weight": f.weight,
                    "impact": f.impact,
                    "description": f.description,
                }
                for f in self.factors
            ],
        }


def clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ============== Sub-scores ==============


def urgency_score(item: Item, as_of: datetime) -> float:
    """Due-date urgency. Overdue beats anything still in the future."""
    days = item.days_until_due(as_of)
    if days is None:
        return 0.3
    if days < 0:
        return 1.0
    if days < 1:
        return 0.95
    if days < 3:
        return 0.85
    if days < 7:
        return 0.7
    if days < 14:
        return 0.5
    return 0.3


def complexity_score(item: Item) -> float:
    """Complex items need early attention, so they score higher."""
    return COMPLEXITY_SCORE[estimate_complexity(item)]


def time_fit_score(item: Item, available_minutes: float | None) -> float:
    """How well the item's estimated duration fits the available time."""
    if not available_minutes:
        return 0.5
    duration = estimate_duration_minutes(estimate_complexity(item))
    if duration <= available_minutes:
        return 1.0
    if duration <= available_minutes * 1.5:
        return 0.6
    return 0.2


def type_priority_score(item: Item) -> float:
    return TYPE_PRIORITY.get(item.type, UNKNOWN_TYPE_PRIORITY)


def priority_score(item: Item, as_of: datetime, available_minutes: float | None = None) -> float:
    """
    Weighted multi-factor priority score in [0, 1].

    Pure function - no I/O.
    """
    score = (
        WEIGHT_URGENCY * urgency_score(item, as_of)
        + WEIGHT_COMPLEXITY * complexity_score(item)
        + WEIGHT_TIME_FIT * time_fit_score(item, available_minutes)
        + WEIGHT_TYPE * type_priority_score(item)
        + WEIGHT_PERFORMANCE * NEUTRAL_PERFORMANCE
    )
    return clamp(score)


# ============== Justification ==============


def justify(item: Item, as_of: datetime) -> list[str]:
    """Human-readable reasons for an item's score, most important first."""
    reasons = []

    days = item.days_until_due(as_of)
    if days is not None:
        if days < 0:
            reasons.append("Overdue - needs immediate attention")
        elif days < 1:
            reasons.append("Due today - high urgency")
        elif days < 3:
            reasons.append(f"Due in {math.ceil(days)} days - plan ahead")

    complexity = estimate_complexity(item)
    if complexity == Complexity.HIGH:
        reasons.append("Complex item - may need extra planning")
    elif complexity == Complexity.MEDIUM:
        reasons.append("Moderate complexity")

    if item.is_meeting:
        reasons.append("Scheduled meeting - fixed time slot")
    elif item.type == ItemType.FINANCIAL.value:
        reasons.append("Financial item - may have deadline implications")

    if not reasons:
        reasons.append(GENERIC_REASON)

    return reasons


def overall_justification(tasks: list[PrioritizedTask]) -> str:
    high = sum(1 for t in tasks if t.priority_score > HIGH_PRIORITY_THRESHOLD)
    medium = sum(
        1
        for t in tasks
        if MEDIUM_PRIORITY_THRESHOLD <= t.priority_score <= HIGH_PRIORITY_THRESHOLD
    )
    return (
        f"Prioritized {len(tasks)} items: {high} high priority, {medium} medium priority. "
        "Focus on the highest-priority items first, considering deadlines and complexity."
    )


# ============== Ranking ==============


def assign_ranks(tasks: list[PrioritizedTask]) -> list[PrioritizedTask]:
    """Number tasks 1..N in list order."""
    for index, task in enumerate(tasks, start=1):
        task.rank = index
    return tasks


def rank_by_rules(
    items: list[Item],
    as_of: datetime,
    available_minutes: float | None = None,
) -> PrioritizationResult:
    """
    Deterministic rule-based prioritization.

    Pure function - no I/O. Ties keep input order (sorted() is stable).
    """
    scored = [
        PrioritizedTask(
            item_id=item.id,
            priority_score=priority_score(item, as_of, available_minutes),
            rank=0,
            reasoning=justify(item, as_of),
            confidence=RULE_CONFIDENCE,
        )
        for item in items
    ]
    ranked = assign_ranks(sorted(scored, key=lambda t: -t.priority_score))
    return PrioritizationResult(
        prioritized_tasks=ranked,
        justification=overall_justification(ranked),
        confidence=RULE_CONFIDENCE,
        method=METHOD_RULES,
    )


def to_analyses(result: PrioritizationResult, user_id: str, created_at: datetime) -> list[TaskAnalysis]:
    """Archive records for a prioritization, one per item."""
    analyses = []
    for task in result.prioritized_tasks:
        weight = 1.0 / len(task.reasoning) if task.reasoning else 0.0
        analyses.append(
            TaskAnalysis(
                item_id=task.item_id,
                user_id=user_id,
                priority_score=task.priority_score,
                recommended_order=task.rank,
                confidence=task.confidence,
                method=result.method,
                created_at=created_at,
                factors=[
                    PriorityFactor(
                        name=f"Factor {i}",
                        weight=weight,
                        impact="positive",
                        description=reason,
                    )
                    for i, reason in enumerate(task.reasoning, start=1)
                ],
            )
        )
    return analyses


# ============== AI prompt and response contract ==============

PRIORITIZATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "prioritizedTasks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "taskId": {"type": "string"},
                    "priorityScore": {"type": "number", "minimum": 0, "maximum": 1},
                    "rank": {"type": "integer", "minimum": 1},
                    "reasoning": {"type": "array", "items": {"type": "string"}},
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                },
                "required": ["taskId", "priorityScore", "rank", "reasoning", "confidence"],
                "additionalProperties": False,
            },
        },
        "justification": {"type": "string"},
        "confidenceScore": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "required": ["prioritizedTasks", "justification", "confidenceScore"],
    "additionalProperties": False,
}


def build_prompt(
    items: list[Item],
    as_of: datetime,
    available_minutes: float | None = None,
    preferences: dict | None = None,
) -> str:
    """Compile the prioritization prompt for the structured generator."""
    tasks_data = [
        {
            "id": item.id,
            "title": item.title,
            "type": item.type,
            "dueDate": item.due.isoformat() if item.due else None,
            "completed": item.completed,
            "complexity": estimate_complexity(item).value,
            "subtaskCount": len(item.subtasks),
        }
        for item in items
    ]
    available = f"{available_minutes:g} minutes" if available_minutes else "not specified"
    preferences_md = json.dumps(preferences, indent=2, default=str) if preferences else "None"

    return f"""You are an expert task prioritization assistant. Analyze the following items and return a prioritized list with detailed reasoning.

Current date: {as_of.date().isoformat()}
Available time: {available}

User preferences:
{preferences_md}

Items to prioritize:
{json.dumps(tasks_data, indent=2)}

Consider these factors, in order of importance:
1. Deadline urgency (items due first rank higher)
2. Complexity vs. available time (complex items need adequate time blocks)
3. Item type and importance category
4. Historical user performance patterns (if available)
5. Estimated duration and time required

For every item provide:
- a priority score from 0 to 1 (1 = highest priority)
- a rank (position in the prioritized list, 1 = first)
- detailed reasons for the placement
- a confidence score from 0 to 1

Also return an overall justification of the prioritization strategy and an overall confidence score.
Every item id must appear exactly once."""


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidResponseError(f"{name} must be a number, got {value!r}")
    if math.isnan(value):
        raise InvalidResponseError(f"{name} is NaN")
    return float(value)


def parse_prioritization(data: Any, items: list[Item]) -> PrioritizationResult:
    """
    Validate a generated prioritization against the input items.

    Clamps scores, requires each input id exactly once, and re-ranks by
    descending score so ranks are always contiguous. Ties keep input
    order; the model's own rank is validated but not used for ordering.

    Raises:
        InvalidResponseError: if the response does not match the contract.
    """
    if not isinstance(data, dict):
        raise InvalidResponseError("Response is not an object")

    raw_tasks = data.get("prioritizedTasks")
    justification = data.get("justification")
    if not isinstance(raw_tasks, list):
        raise InvalidResponseError("Missing prioritizedTasks list")
    if not isinstance(justification, str) or not justification.strip():
        raise InvalidResponseError("Missing justification")
    confidence = clamp(_number(data.get("confidenceScore"), "confidenceScore"))

    input_order = {item.id: index for index, item in enumerate(items)}
    seen: set[str] = set()
    parsed: list[tuple[float, int, PrioritizedTask]] = []

    for entry in raw_tasks:
        if not isinstance(entry, dict):
            raise InvalidResponseError("Task entry is not an object")
        task_id = entry.get("taskId")
        if not isinstance(task_id, str) or task_id not in input_order:
            raise InvalidResponseError(f"Unknown taskId {task_id!r}")
        if task_id in seen:
            raise InvalidResponseError(f"Duplicate taskId {task_id!r}")
        seen.add(task_id)

        reasoning = entry.get("reasoning")
        if not isinstance(reasoning, list) or not all(isinstance(r, str) for r in reasoning):
            raise InvalidResponseError(f"Invalid reasoning for {task_id!r}")
        reasoning = [r for r in reasoning if r.strip()] or [GENERIC_REASON]

        score = clamp(_number(entry.get("priorityScore"), "priorityScore"))
        _number(entry.get("rank"), "rank")
        task = PrioritizedTask(
            item_id=task_id,
            priority_score=score,
            rank=0,
            reasoning=reasoning,
            confidence=clamp(_number(entry.get("confidence"), "confidence")),
        )
        parsed.append((-score, input_order[task_id], task))

    if len(seen) != len(input_order):
        missing = sorted(set(input_order) - seen)
        raise InvalidResponseError(f"Response is missing items: {missing}")

    parsed.sort(key=lambda entry: entry[:2])
    ranked = assign_ranks([entry[2] for entry in parsed])
    return PrioritizationResult(
        prioritized_tasks=ranked,
        justification=justification.strip(),
        confidence=confidence,
        method=METHOD_AI,
    )
