"""Pattern detector - mines a user's items for habits worth acting on."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .core.items import Item
from .core.patterns import (
    DetectedPattern,
    PatternSuggestion,
    detect_batch,
    detect_performance,
    detect_postponement,
    detect_recurring,
    filter_significant,
)
from .fanout import gather_isolated
from .ports.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)


@dataclass
class PatternRun:
    patterns: list[DetectedPattern]
    suggestions_stored: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PatternDetector:
    """
    Runs the recurring, batch, postponement and performance detectors.

    Purely rule-based. Detected patterns below the confidence threshold are
    discarded; the rest are persisted through the store and returned.
    """

    def __init__(
        self,
        store: AnalysisStore | None = None,
        min_occurrences: int = 3,
        confidence_threshold: float = 0.6,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.min_occurrences = min_occurrences
        self.confidence_threshold = confidence_threshold
        self.clock = clock

    async def detect(self, user_id: str, items: list[Item]) -> list[DetectedPattern]:
        return (await self.run(user_id, items)).patterns

    async def run(self, user_id: str, items: list[Item]) -> PatternRun:
        """Detect, filter and persist patterns, reporting how many suggestions were stored."""
        if items is None:
            raise ValueError("items must be a list, not None")
        items = list(items)

        logger.info(f"Analyzing patterns for user {user_id} ({len(items)} items)")

        patterns = await gather_isolated(
            {
                "recurring": lambda: detect_recurring(items, self.min_occurrences),
                "batch": lambda: detect_batch(items, self.min_occurrences),
                "postponement": lambda: detect_postponement(items),
                "performance": lambda: detect_performance(items, self.min_occurrences),
            },
            context=f"patterns for user {user_id}",
        )
        significant = filter_significant(patterns, self.confidence_threshold)

        logger.info(
            f"Pattern analysis for user {user_id}: {len(patterns)} detected, "
            f"{len(significant)} above threshold {self.confidence_threshold}"
        )

        stored = self._store(user_id, significant)
        return PatternRun(patterns=significant, suggestions_stored=stored)

    def recent_suggestions(self, user_id: str, limit: int = 10) -> list[PatternSuggestion]:
        if self.store is None:
            return []
        return self.store.list_active_suggestions(user_id)[:limit]

    def accept_suggestion(self, suggestion_id: str) -> bool:
        accepted = self.store is not None and self.store.mark_suggestion(suggestion_id, accepted=True)
        logger.info(f"Suggestion {suggestion_id} accepted: {accepted}")
        return accepted

    def dismiss_suggestion(self, suggestion_id: str) -> bool:
        dismissed = self.store is not None and self.store.mark_suggestion(suggestion_id, accepted=False)
        logger.info(f"Suggestion {suggestion_id} dismissed: {dismissed}")
        return dismissed

    def _store(self, user_id: str, patterns: list[DetectedPattern]) -> int:
        if self.store is None:
            return 0
        stored = 0
        now = self.clock()
        for pattern in patterns:
            try:
                self.store.upsert_pattern(
                    user_id,
                    pattern.pattern_type.value,
                    {
                        "pattern_data": pattern.data_dict(),
                        "confidence": pattern.confidence,
                        "last_updated": now.isoformat(),
                    },
                )
            except Exception:
                logger.exception(f"Failed to upsert {pattern.pattern_type.value} pattern for user {user_id}")
            try:
                self.store.store_suggestion(PatternSuggestion.from_pattern(user_id, pattern, now))
            except Exception:
                logger.exception(
                    f"Failed to store suggestion {pattern.suggestion.id} for user {user_id}"
                )
            else:
                stored += 1
        return stored
