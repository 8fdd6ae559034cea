"""Priority scorer - AI-augmented ranking with a deterministic fallback."""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Awaitable

from .core.items import Item
from .core.priority import (
    PRIORITIZATION_SCHEMA,
    InvalidResponseError,
    PrioritizationResult,
    build_prompt,
    parse_prioritization,
    rank_by_rules,
    to_analyses,
)
from .ports.analysis_store import AnalysisStore
from .ports.structured_generator import GenerationError, GenerationOptions, StructuredGenerator

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Exponential backoff for the generation call.

    max_attempts counts the initial call. Delay before retry n (0-based) is
    min(base_delay * backoff_multiplier**n, max_delay) plus up to `jitter`
    seconds; the sum of all delays never exceeds max_total_wait.
    """

    max_attempts: int = 2
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0
    jitter: float = 0.5
    max_total_wait: float = 30.0

    def delay(self, attempt: int) -> float:
        base = min(self.base_delay * self.backoff_multiplier**attempt, self.max_delay)
        return base + random.uniform(0, self.jitter)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriorityScorer:
    """
    Ranks a user's items by urgency and importance.

    Tries the structured generator first; any failure there (after retries)
    falls back to the rule-based scorer. Never raises generation errors.
    """

    def __init__(
        self,
        generator: StructuredGenerator | None = None,
        store: AnalysisStore | None = None,
        retry: RetryPolicy | None = None,
        options: GenerationOptions | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.generator = generator
        self.store = store
        self.retry = retry or RetryPolicy()
        self.options = options or GenerationOptions(context="task-planning", temperature=0.3, max_tokens=2500)
        self.clock = clock
        self.sleep = sleep

    async def prioritize(
        self,
        items: list[Item],
        available_minutes: float | None = None,
        preferences: dict | None = None,
        user_id: str = "",
    ) -> PrioritizationResult:
        """Produce a ranking covering every item exactly once."""
        if items is None:
            raise ValueError("items must be a list, not None")
        items = list(items)
        now = self.clock()

        logger.info(f"Prioritizing {len(items)} items (available time: {available_minutes})")

        result = None
        if items and self.generator is not None:
            result = await self._prioritize_with_ai(items, now, available_minutes, preferences)
        if result is None:
            result = rank_by_rules(items, now, available_minutes)

        self._store(result, user_id, now)
        return result

    def prioritize_with_rules(
        self,
        items: list[Item],
        available_minutes: float | None = None,
        user_id: str = "",
    ) -> PrioritizationResult:
        """Rule-based ranking only, skipping the generator."""
        if items is None:
            raise ValueError("items must be a list, not None")
        now = self.clock()
        result = rank_by_rules(list(items), now, available_minutes)
        self._store(result, user_id, now)
        return result

    async def _prioritize_with_ai(
        self,
        items: list[Item],
        now: datetime,
        available_minutes: float | None,
        preferences: dict | None,
    ) -> PrioritizationResult | None:
        prompt = build_prompt(items, now, available_minutes, preferences)
        waited = 0.0

        for attempt in range(self.retry.max_attempts):
            try:
                response = await self.generator.generate_structured(PRIORITIZATION_SCHEMA, prompt, self.options)
                result = parse_prioritization(response.data, items)
                logger.info(
                    f"AI prioritization succeeded (model={response.model}, "
                    f"tokens={response.usage.total_tokens}, finish={response.finish_reason})"
                )
                return result
            except InvalidResponseError as e:
                logger.warning(f"AI prioritization returned an invalid response, using rules: {e}")
                return None
            except GenerationError as e:
                if not e.retryable:
                    logger.warning(f"AI prioritization failed (not retryable), using rules: {e}")
                    return None
                error = e
            except Exception as e:
                error = e

            if attempt + 1 >= self.retry.max_attempts:
                logger.warning(
                    f"AI prioritization failed after {attempt + 1} attempts, using rules: {error!r}"
                )
                return None

            delay = min(self.retry.delay(attempt), self.retry.max_total_wait - waited)
            if delay <= 0:
                logger.warning(f"AI prioritization retry budget spent, using rules: {error!r}")
                return None
            logger.info(
                f"AI prioritization attempt {attempt + 1}/{self.retry.max_attempts} failed: {error!r}; "
                f"retrying in {delay:.1f}s"
            )
            waited += delay
            await self.sleep(delay)

        return None

    def _store(self, result: PrioritizationResult, user_id: str, now: datetime) -> None:
        if self.store is None:
            return
        stored = 0
        for analysis in to_analyses(result, user_id, now):
            try:
                self.store.store_analysis(analysis)
                stored += 1
            except Exception:
                logger.exception(
                    f"Failed to store analysis for item {analysis.item_id} (user {user_id})"
                )
        logger.info(f"Stored {stored}/{len(result.prioritized_tasks)} task analyses")
