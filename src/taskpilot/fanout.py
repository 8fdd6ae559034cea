"""Run independent detectors concurrently, keeping the ones that succeed."""

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


async def gather_isolated(
    jobs: dict[str, Callable[[], list[Any]]],
    context: str = "",
) -> list[Any]:
    """
    Run each job in a worker thread and concatenate their results.

    Jobs are pure, synchronous callables returning lists. A job that raises
    is logged and contributes nothing; results keep the order of `jobs`.
    """
    names = list(jobs)
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(jobs[name]) for name in names),
        return_exceptions=True,
    )

    merged: list[Any] = []
    failures = 0
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, BaseException):
            failures += 1
            logger.error(
                f"Detector '{name}' failed{f' ({context})' if context else ''}: {outcome!r}",
                exc_info=outcome,
            )
            continue
        merged.extend(outcome)

    if failures:
        logger.warning(f"{failures}/{len(names)} detectors failed{f' ({context})' if context else ''}")
    return merged
