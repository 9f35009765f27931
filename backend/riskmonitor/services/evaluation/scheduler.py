"""
Periodic Evaluator

Runs the batch evaluation of all active accounts on a fixed interval.
Runs never overlap: the loop is sequential and ``run_once`` skips while a
pass is already in progress.
"""

import asyncio
import logging
from typing import Optional

from riskmonitor.core.config import settings
from riskmonitor.schemas.evaluation import RuleEvaluationResult
from riskmonitor.services.evaluation.service import RuleEvaluatorService, get_rule_evaluator

logger = logging.getLogger(__name__)


def summarize(results: list[RuleEvaluationResult]) -> dict:
    """Batch summary as logged after each pass."""
    return {
        "total_accounts": len({r.account_id for r in results}),
        "violations_found": sum(1 for r in results if r.violated),
    }


class PeriodicEvaluator:
    """
    Background batch evaluation.

    Usage:
        evaluator = PeriodicEvaluator()
        await evaluator.start()
        ...
        await evaluator.stop()
    """

    def __init__(
        self,
        evaluator: Optional[RuleEvaluatorService] = None,
        interval_seconds: Optional[float] = None,
    ):
        self._evaluator = evaluator or get_rule_evaluator()
        self._interval = interval_seconds or settings.periodic_evaluation_interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._pass_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        if self._running:
            logger.warning("Periodic evaluator already running")
            return True

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Periodic evaluator started (every {self._interval}s)")
        return True

    async def stop(self) -> None:
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Periodic evaluator stopped")

    async def run_once(self) -> list[RuleEvaluationResult]:
        """Run a single batch pass. Returns [] if a pass is already running."""
        if self._pass_lock.locked():
            logger.info("Periodic evaluation already in progress, skipping...")
            return []

        async with self._pass_lock:
            results = await self._evaluator.evaluate_all_active_accounts()

        logger.info("Periodic risk evaluation completed", extra=summarize(results))
        return results

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Periodic evaluation failed: {e}", exc_info=True)

            await asyncio.sleep(self._interval)


# Singleton instance
_periodic_evaluator: Optional[PeriodicEvaluator] = None


def get_periodic_evaluator() -> PeriodicEvaluator:
    global _periodic_evaluator
    if _periodic_evaluator is None:
        _periodic_evaluator = PeriodicEvaluator()
    return _periodic_evaluator


async def start_periodic_evaluator() -> PeriodicEvaluator:
    evaluator = get_periodic_evaluator()
    await evaluator.start()
    return evaluator


async def stop_periodic_evaluator() -> None:
    global _periodic_evaluator
    if _periodic_evaluator:
        await _periodic_evaluator.stop()
        _periodic_evaluator = None
