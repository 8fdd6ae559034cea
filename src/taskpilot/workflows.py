"""Shared workflow layer between the CLI and the worker.

Wires adapters from configuration and groups the three analyses of one
request into a single report.
"""

import asyncio
import logging
from dataclasses import dataclass

from .adapters.claude_cli import ClaudeCLIGenerator
from .adapters.file_items import FileItemRepository
from .adapters.file_store import FileAnalysisStore
from .adapters.openrouter import OpenRouterGenerator
from .config import TASKPILOT_HOME, Config, ConfigError
from .conflict_detector import ConflictDetector, ConflictRequest
from .core.conflicts import DetectedConflict, TimeWindow
from .core.items import Item
from .core.patterns import DetectedPattern
from .core.priority import PrioritizationResult
from .pattern_detector import PatternDetector
from .ports.structured_generator import StructuredGenerator
from .prioritizer import PriorityScorer, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    prioritization: PrioritizationResult
    patterns: list[DetectedPattern]
    conflicts: list[DetectedConflict]

    def to_dict(self) -> dict:
        return {
            "prioritization": self.prioritization.to_dict(),
            "patterns": [p.to_dict() for p in self.patterns],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


class TaskIntelligence:
    """Runs the scorer and both detectors over one snapshot of a user's items."""

    def __init__(self, scorer: PriorityScorer, patterns: PatternDetector, conflicts: ConflictDetector):
        self.scorer = scorer
        self.patterns = patterns
        self.conflicts = conflicts

    async def analyze(
        self,
        user_id: str,
        items: list[Item],
        available_minutes: float | None = None,
        preferences: dict | None = None,
        new_item: Item | None = None,
        window: TimeWindow | None = None,
    ) -> AnalysisReport:
        """
        Prioritize, mine patterns and check conflicts concurrently.

        Raises:
            ValueError: if items is None. An empty list is a valid snapshot.
        """
        if items is None:
            raise ValueError("items must be a list, not None")
        items = list(items)

        prioritization, patterns, conflicts = await asyncio.gather(
            self.scorer.prioritize(items, available_minutes, preferences, user_id=user_id),
            self.patterns.detect(user_id, items),
            self.conflicts.detect(ConflictRequest(user_id, new_item=new_item, window=window), items),
        )

        logger.info(
            f"Analysis for user {user_id}: {len(prioritization.prioritized_tasks)} ranked "
            f"({prioritization.method}), {len(patterns)} patterns, {len(conflicts)} conflicts"
        )
        return AnalysisReport(prioritization=prioritization, patterns=patterns, conflicts=conflicts)


# ============== Wiring ==============


def get_store(config: Config) -> FileAnalysisStore:
    """Resolve analysis storage directory from config."""
    return FileAnalysisStore(config.data_path / "analysis")


def get_repository(config: Config) -> FileItemRepository:
    """Resolve item directory from config."""
    return FileItemRepository(config.data_path / "items")


def get_generator(config: Config) -> StructuredGenerator | None:
    """Build the structured generator for the configured AI backend."""
    match config.ai_backend:
        case "claude_cli":
            return ClaudeCLIGenerator(cwd=TASKPILOT_HOME, timeout=config.ai_timeout, model=config.ai_model)
        case "openrouter":
            return OpenRouterGenerator(
                api_key=config.resolved_openrouter_key,
                model=config.ai_model,
                base_url=config.openrouter_base_url,
                timeout=config.ai_timeout,
            )
        case "none":
            return None
        case _:
            raise ConfigError(f"Unknown AI backend: {config.ai_backend!r}")


def build_engine(config: Config, use_ai: bool = True) -> TaskIntelligence:
    """Construct the scorer and detectors from configuration."""
    store = get_store(config)
    scorer = PriorityScorer(
        generator=get_generator(config) if use_ai else None,
        store=store,
        retry=RetryPolicy(
            max_attempts=config.ai_max_attempts,
            base_delay=config.ai_base_delay,
            max_delay=config.ai_max_delay,
        ),
    )
    patterns = PatternDetector(
        store=store,
        min_occurrences=config.min_pattern_occurrences,
        confidence_threshold=config.pattern_confidence_threshold,
    )
    conflicts = ConflictDetector(store=store, critical_high_complexity=config.critical_high_complexity)
    return TaskIntelligence(scorer, patterns, conflicts)
