"""Conflict detector - scheduling overlaps, overloaded days and squeezed deadlines."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .core.conflicts import (
    DetectedConflict,
    TimeWindow,
    check_deadlines,
    check_overload,
    check_scheduling,
    restrict_to_window,
    to_calendar_item,
)
from .core.items import Item
from .fanout import gather_isolated
from .ports.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)


@dataclass
class ConflictRequest:
    user_id: str
    new_item: Item | None = None
    window: TimeWindow | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConflictDetector:
    """Checks a user's items (plus an optional item being added) for conflicts."""

    def __init__(
        self,
        store: AnalysisStore | None = None,
        critical_high_complexity: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.critical_high_complexity = critical_high_complexity
        self.clock = clock

    async def detect(self, request: ConflictRequest, existing_items: list[Item]) -> list[DetectedConflict]:
        if existing_items is None:
            raise ValueError("existing_items must be a list, not None")

        now = self.clock()
        calendar = [to_calendar_item(item) for item in existing_items]
        if request.new_item is not None:
            calendar.append(to_calendar_item(request.new_item))
        calendar = restrict_to_window(calendar, request.window)

        logger.info(
            f"Checking conflicts for user {request.user_id} "
            f"({len(calendar)} items, new item: {request.new_item is not None})"
        )

        conflicts = await gather_isolated(
            {
                "scheduling": lambda: check_scheduling(calendar, now),
                "overload": lambda: check_overload(calendar, now, self.critical_high_complexity),
                "deadline": lambda: check_deadlines(calendar, now),
            },
            context=f"conflicts for user {request.user_id}",
        )
        for conflict in conflicts:
            conflict.user_id = request.user_id

        logger.info(f"Conflict detection for user {request.user_id}: {len(conflicts)} found")

        self._store(request.user_id, conflicts)
        return conflicts

    def unresolved_conflicts(self, user_id: str) -> list[dict]:
        if self.store is None:
            return []
        return self.store.list_unresolved_conflicts(user_id)

    def resolve_conflict(self, conflict_id: str) -> bool:
        resolved = self.store is not None and self.store.resolve_conflict(conflict_id)
        logger.info(f"Conflict {conflict_id} resolved: {resolved}")
        return resolved

    def _store(self, user_id: str, conflicts: list[DetectedConflict]) -> None:
        if self.store is None:
            return
        for conflict in conflicts:
            try:
                self.store.store_conflict(user_id, conflict)
            except Exception:
                logger.exception(
                    f"Failed to store {conflict.conflict_type.value} conflict {conflict.id} for user {user_id}"
                )
