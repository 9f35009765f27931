"""
Tests for the periodic evaluator.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from riskmonitor.schemas.evaluation import RuleEvaluationResult
from riskmonitor.services.evaluation import PeriodicEvaluator, summarize


def mock_evaluator(results=None):
    evaluator = MagicMock()
    evaluator.evaluate_all_active_accounts = AsyncMock(return_value=results or [])
    return evaluator


class TestPeriodicEvaluator:
    """Tests for the background batch loop."""

    def test_summarize_counts_distinct_accounts(self):
        results = [
            RuleEvaluationResult(account_id=1, violated=True),
            RuleEvaluationResult(account_id=1, violated=True),
            RuleEvaluationResult(account_id=2, violated=True),
        ]
        assert summarize(results) == {"total_accounts": 2, "violations_found": 3}

    @pytest.mark.asyncio
    async def test_run_once_returns_batch_results(self):
        results = [RuleEvaluationResult(account_id=1, violated=True)]
        periodic = PeriodicEvaluator(mock_evaluator(results), interval_seconds=3600)

        assert await periodic.run_once() == results

    @pytest.mark.asyncio
    async def test_overlapping_run_is_skipped(self):
        release = asyncio.Event()
        evaluator = MagicMock()

        async def slow_batch():
            await release.wait()
            return [RuleEvaluationResult(account_id=1, violated=True)]

        evaluator.evaluate_all_active_accounts = slow_batch
        periodic = PeriodicEvaluator(evaluator, interval_seconds=3600)

        first = asyncio.create_task(periodic.run_once())
        await asyncio.sleep(0)

        assert await periodic.run_once() == []

        release.set()
        assert len(await first) == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        evaluator = mock_evaluator()
        periodic = PeriodicEvaluator(evaluator, interval_seconds=3600)

        await periodic.start()
        await asyncio.sleep(0.05)
        assert periodic.is_running

        await periodic.stop()
        assert not periodic.is_running
        evaluator.evaluate_all_active_accounts.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_pass_keeps_loop_alive(self):
        calls = []

        async def batch():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return []

        evaluator = MagicMock()
        evaluator.evaluate_all_active_accounts = batch
        periodic = PeriodicEvaluator(evaluator, interval_seconds=0.01)

        await periodic.start()
        await asyncio.sleep(0.1)
        await periodic.stop()

        assert len(calls) >= 2
