"""Periodic pattern analysis worker."""

import asyncio
import logging
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Config, load_config
from .core.patterns import DetectedPattern
from .pattern_detector import PatternDetector, PatternRun
from .ports.item_repo import ItemRepository
from .workflows import get_repository, get_store

logger = logging.getLogger(__name__)


class WorkerBusyError(RuntimeError):
    """Raised when a run is requested while another one is in progress."""

    pass


@dataclass
class WorkerRunResult:
    users_processed: int = 0
    patterns_detected: int = 0
    suggestions_created: int = 0
    errors: int = 0


class PatternAnalysisWorker:
    """
    Runs pattern analysis for every user with items.

    One user's failure is counted and logged, never fatal to the run.
    """

    def __init__(
        self,
        detector: PatternDetector,
        repository: ItemRepository,
        max_users_per_run: int = 100,
        min_items: int = 3,
        notify_high_impact: bool = True,
    ):
        self.detector = detector
        self.repository = repository
        self.max_users_per_run = max_users_per_run
        self.min_items = min_items
        self.notify_high_impact = notify_high_impact
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def execute(self) -> WorkerRunResult:
        if self._running:
            raise WorkerBusyError("Pattern analysis worker already running")

        self._running = True
        try:
            result = WorkerRunResult()
            user_ids = self.repository.list_users()[: self.max_users_per_run]
            logger.info(f"Pattern analysis run started for {len(user_ids)} users")

            for user_id in user_ids:
                try:
                    run = await self._process_user(user_id)
                except Exception:
                    result.errors += 1
                    logger.exception(f"Pattern analysis failed for user {user_id}")
                    continue
                result.users_processed += 1
                result.patterns_detected += len(run.patterns)
                result.suggestions_created += run.suggestions_stored

            logger.info(
                f"Pattern analysis run complete: {result.users_processed} users, "
                f"{result.patterns_detected} patterns, {result.errors} errors"
            )
            return result
        finally:
            self._running = False

    async def _process_user(self, user_id: str) -> PatternRun:
        items = self.repository.fetch_items(user_id)
        if len(items) < self.min_items:
            logger.info(f"Skipping user {user_id}: only {len(items)} items")
            return PatternRun(patterns=[])

        run = await self.detector.run(user_id, items)

        high_impact = [p for p in run.patterns if p.suggestion.impact == "high"]
        if self.notify_high_impact and high_impact:
            self._notify(user_id, high_impact)
        return run

    def _notify(self, user_id: str, patterns: list[DetectedPattern]) -> None:
        # Delivery channels live outside this project; the log is the notification.
        for pattern in patterns:
            logger.info(
                f"High impact suggestion for user {user_id} [{pattern.pattern_type.value}]: "
                f"{pattern.suggestion.title}"
            )


def build_worker(config: Config) -> PatternAnalysisWorker:
    detector = PatternDetector(
        store=get_store(config),
        min_occurrences=config.min_pattern_occurrences,
        confidence_threshold=config.pattern_confidence_threshold,
    )
    return PatternAnalysisWorker(
        detector,
        get_repository(config),
        max_users_per_run=config.worker_max_users,
        min_items=config.worker_min_items,
        notify_high_impact=config.worker_notify_high_impact,
    )


async def run_scheduled(worker: PatternAnalysisWorker) -> None:
    """Scheduler entry point; overlapping runs are skipped."""
    try:
        await worker.execute()
    except WorkerBusyError:
        logger.warning("Previous pattern analysis run still in progress, skipping")


def setup_scheduler(worker: PatternAnalysisWorker, config: Config) -> AsyncIOScheduler:
    """Schedule pattern analysis every N hours."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_scheduled,
        CronTrigger(hour=f"*/{config.worker_interval_hours}", minute=0),
        args=[worker],
        id="pattern_analysis",
    )
    logger.info(f"Scheduled pattern analysis every {config.worker_interval_hours}h")
    return scheduler


def run_worker(config: Config | None = None) -> None:
    """Run the worker on its schedule until interrupted."""
    config = config or load_config()
    worker = build_worker(config)

    async def main() -> None:
        scheduler = setup_scheduler(worker, config)
        scheduler.start()
        logger.info("Scheduler started")
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)

    asyncio.run(main())
