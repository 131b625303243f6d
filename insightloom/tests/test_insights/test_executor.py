"""Unit tests for MapExecutor and ConcurrencyLimiter.

Tests cover:
- One completion per chunk with partial prompts and chunk task ids
- Failure isolation (error results and exceptions)
- Submission-order results regardless of completion order
- Concurrency bound across categories sharing one limiter
- Slot release on failure and cancellation
"""

import asyncio
import pytest
from unittest.mock import patch

from insightloom.core.insights.executor import MapExecutor
from insightloom.core.insights.limiter import ConcurrencyLimiter
from insightloom.core.insights.models import InsightCategory
from insightloom.core.insights.schemas import TechnologiesInsight

from fakes import StubCompletion


def _tech_for_prompt(task_id, prompt):
    """Return one technology named after the first summary in the prompt."""
    first = prompt.splitlines()[1]
    return {"technologies": [{"name": first, "description": "d"}]}


# ── Tests: MapExecutor ────────────────────────────────────────────────────


class TestMapExecutor:

    @pytest.mark.asyncio
    async def test_one_call_per_chunk(self, prompt_builder):
        stub = StubCompletion(_tech_for_prompt)
        executor = MapExecutor(stub, prompt_builder, ConcurrencyLimiter(2))

        partials = await executor.run(InsightCategory.TECHNOLOGIES, [["a"], ["b"], ["c"]])

        assert len(stub.calls) == 3
        assert stub.task_ids() == ["technologies-chunk"] * 3
        assert all(c[1].startswith("PARTIAL:") for c in stub.calls)
        assert all(c[2] is TechnologiesInsight for c in stub.calls)
        assert [p["technologies"][0]["name"] for p in partials] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_failed_chunks_dropped_without_affecting_siblings(self, prompt_builder):
        def handler(task_id, prompt):
            first = prompt.splitlines()[1]
            if first == "bad":
                return None
            if first == "boom":
                raise RuntimeError("provider exploded")
            return _tech_for_prompt(task_id, prompt)

        stub = StubCompletion(handler)
        executor = MapExecutor(stub, prompt_builder, ConcurrencyLimiter(4))

        with patch("insightloom.core.insights.executor.logger") as mock_logger:
            partials = await executor.run(
                InsightCategory.TECHNOLOGIES, [["ok1"], ["bad"], ["boom"], ["ok2"]]
            )

        assert [p["technologies"][0]["name"] for p in partials] == ["ok1", "ok2"]
        assert len(stub.calls) == 4
        assert mock_logger.warning.call_count == 2
        assert "ChunkCompletionFailure" in str(mock_logger.warning.call_args_list[0])

    @pytest.mark.asyncio
    async def test_all_fail_returns_empty(self, prompt_builder):
        stub = StubCompletion(lambda t, p: None)
        executor = MapExecutor(stub, prompt_builder, ConcurrencyLimiter(2))

        assert await executor.run(InsightCategory.TECHNOLOGIES, [["a"], ["b"]]) == []

    @pytest.mark.asyncio
    async def test_results_in_submission_order(self, prompt_builder):
        class ReversedDelays(StubCompletion):
            async def complete(self, task_id, prompt, model):
                first = prompt.splitlines()[1]
                await asyncio.sleep(0.03 if first == "first" else 0.0)
                return await super().complete(task_id, prompt, model)

        stub = ReversedDelays(_tech_for_prompt)
        executor = MapExecutor(stub, prompt_builder, ConcurrencyLimiter(3))

        partials = await executor.run(
            InsightCategory.TECHNOLOGIES, [["first"], ["second"], ["third"]]
        )

        assert [p["technologies"][0]["name"] for p in partials] == ["first", "second", "third"]


# ── Tests: Concurrency bound ──────────────────────────────────────────────


class TestConcurrencyBound:

    @pytest.mark.asyncio
    async def test_in_flight_never_exceeds_capacity(self, prompt_builder):
        stub = StubCompletion(_tech_for_prompt, delay=0.01)
        limiter = ConcurrencyLimiter(2)
        executor = MapExecutor(stub, prompt_builder, limiter)

        await executor.run(InsightCategory.TECHNOLOGIES, [[str(i)] for i in range(8)])

        assert stub.peak_in_flight <= 2
        assert limiter.peak_in_flight == 2
        assert limiter.in_flight == 0

    @pytest.mark.asyncio
    async def test_bound_is_shared_across_categories(self, prompt_builder):
        def handler(task_id, prompt):
            if task_id.startswith("technologies"):
                return _tech_for_prompt(task_id, prompt)
            return {"appDescription": "desc"}

        stub = StubCompletion(handler, delay=0.01)
        limiter = ConcurrencyLimiter(3)
        tech_executor = MapExecutor(stub, prompt_builder, limiter)
        desc_executor = MapExecutor(stub, prompt_builder, limiter)

        await asyncio.gather(
            tech_executor.run(InsightCategory.TECHNOLOGIES, [[str(i)] for i in range(6)]),
            desc_executor.run(InsightCategory.APP_DESCRIPTION, [[str(i)] for i in range(6)]),
        )

        assert len(stub.calls) == 12
        assert stub.peak_in_flight <= 3


# ── Tests: ConcurrencyLimiter ─────────────────────────────────────────────


class TestConcurrencyLimiter:

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)

    @pytest.mark.asyncio
    async def test_slot_released_on_exception(self):
        limiter = ConcurrencyLimiter(1)

        with pytest.raises(RuntimeError):
            async with limiter.slot():
                raise RuntimeError("fail")

        assert limiter.in_flight == 0
        # Capacity is available again
        await asyncio.wait_for(limiter.run(asyncio.sleep, 0), timeout=1)

    @pytest.mark.asyncio
    async def test_slot_released_on_cancellation(self):
        limiter = ConcurrencyLimiter(1)
        started = asyncio.Event()

        async def hold():
            async with limiter.slot():
                started.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(hold())
        await started.wait()
        assert limiter.in_flight == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert limiter.in_flight == 0
        await asyncio.wait_for(limiter.run(asyncio.sleep, 0), timeout=1)

    @pytest.mark.asyncio
    async def test_run_returns_value(self):
        limiter = ConcurrencyLimiter(2)

        async def add(a, b):
            return a + b

        assert await limiter.run(add, 2, b=3) == 5

    def test_reusable_across_event_loops(self):
        limiter = ConcurrencyLimiter(1)

        async def contend():
            await asyncio.gather(*(limiter.run(asyncio.sleep, 0.01) for _ in range(3)))

        asyncio.run(contend())
        asyncio.run(contend())

        assert limiter.in_flight == 0
        assert limiter.peak_in_flight == 1
