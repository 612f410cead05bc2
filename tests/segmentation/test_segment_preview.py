"""
Tests for the debounced, generation-fenced live preview.
"""

import asyncio

import pytest

from audience.services.segmentation.evaluator import EvaluationResult
from audience.services.segmentation.fields import Operator, SegmentField
from audience.services.segmentation.preview import Debouncer, PreviewService
from audience.services.segmentation.rules import Condition, MatchMode, RuleSet, Scalar

DELAY = 0.02


def source_rules(value: str) -> RuleSet:
    return RuleSet(MatchMode.ALL, (Condition(SegmentField.SOURCE, Operator.EQUALS, Scalar(value)),))


class ControlledEvaluator:
    """Evaluate callable whose results the test resolves by hand."""

    def __init__(self):
        self.calls = []
        self.futures = []

    async def __call__(self, rule_set):
        future = asyncio.get_running_loop().create_future()
        self.calls.append(rule_set)
        self.futures.append(future)
        return await future


class RecordingEvaluator:
    def __init__(self, count: int = 7):
        self.count = count
        self.calls = []

    async def __call__(self, rule_set):
        self.calls.append(rule_set)
        return EvaluationResult(count=self.count, sample=list(range(self.count)))


class TestDebouncer:

    @pytest.mark.asyncio
    async def test_emits_only_last_value(self):
        emitted = []
        debouncer = Debouncer(DELAY, emitted.append)

        for value in ("a", "ab", "abc"):
            debouncer.submit(value)
            await asyncio.sleep(DELAY / 4)
        assert emitted == []

        await debouncer.wait()
        assert emitted == ["abc"]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_separate_bursts_emit_separately(self):
        emitted = []
        debouncer = Debouncer(DELAY, emitted.append)

        debouncer.submit(1)
        await debouncer.wait()
        debouncer.submit(2)
        await debouncer.wait()

        assert emitted == [1, 2]

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_value(self):
        emitted = []
        debouncer = Debouncer(DELAY, emitted.append)

        debouncer.submit("x")
        debouncer.cancel()
        await asyncio.sleep(DELAY * 2)

        assert emitted == []

    @pytest.mark.asyncio
    async def test_flush_emits_immediately(self):
        emitted = []
        debouncer = Debouncer(10, emitted.append)

        debouncer.submit("now")
        debouncer.flush()

        assert emitted == ["now"]
        assert not debouncer.pending


class TestPreviewDebounce:

    @pytest.mark.asyncio
    async def test_rapid_edits_issue_one_evaluation(self):
        evaluator = RecordingEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)

        for value in ("i", "in", "ins", "instagram"):
            preview.submit(source_rules(value))
        await preview.wait_idle()

        assert evaluator.calls == [source_rules("instagram")]
        assert preview.generation == 1
        assert preview.state.count == 7
        assert preview.state.loading is False

    @pytest.mark.asyncio
    async def test_sample_is_capped(self):
        preview = PreviewService(RecordingEvaluator(count=25), delay=DELAY, sample_size=10)

        await preview.refresh(source_rules("instagram"))

        assert preview.state.count == 25
        assert len(preview.state.sample) == 10

    @pytest.mark.asyncio
    async def test_empty_conditions_are_not_sent(self):
        evaluator = RecordingEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)
        rule_set = RuleSet(
            MatchMode.ANY,
            (Condition.for_field(SegmentField.TAGS), Condition(SegmentField.SOURCE, Operator.EQUALS, Scalar("x"))),
        )

        await preview.refresh(rule_set)

        assert evaluator.calls == [rule_set.evaluable_only()]


class TestGenerationFencing:

    @pytest.mark.asyncio
    async def test_only_latest_generation_is_applied(self):
        evaluator = ControlledEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)

        first = preview.refresh(source_rules("a"))
        second = preview.refresh(source_rules("b"))
        third = preview.refresh(source_rules("c"))
        await asyncio.sleep(0)
        assert len(evaluator.futures) == 3
        assert preview.in_flight == 3

        # 1 finishes first, then 3, then 2 arrives late
        evaluator.futures[0].set_result(EvaluationResult(count=1))
        await first
        assert preview.state.count is None
        assert preview.state.loading is True

        evaluator.futures[2].set_result(EvaluationResult(count=3))
        await third
        assert preview.state.count == 3
        assert preview.state.generation == 3

        evaluator.futures[1].set_result(EvaluationResult(count=2))
        await second
        assert preview.state.count == 3
        assert preview.discarded == 2

    @pytest.mark.asyncio
    async def test_non_evaluable_edit_fences_in_flight_result(self):
        evaluator = ControlledEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)

        pending = preview.refresh(source_rules("instagram"))
        await asyncio.sleep(0)
        assert preview.refresh(source_rules("  ")) is None
        assert preview.generation == 2

        evaluator.futures[0].set_result(EvaluationResult(count=9))
        await pending

        assert preview.state.count is None
        assert preview.state.loading is False
        assert preview.discarded == 1
        assert len(evaluator.calls) == 1

    @pytest.mark.asyncio
    async def test_close_fences_in_flight_result(self):
        evaluator = ControlledEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)

        pending = preview.refresh(source_rules("instagram"))
        await asyncio.sleep(0)
        preview.close()
        evaluator.futures[0].set_result(EvaluationResult(count=9))
        await pending

        assert preview.state.count is None


class TestPreviewFailures:

    @pytest.mark.asyncio
    async def test_failure_resets_state(self):
        async def failing(rule_set):
            raise RuntimeError("segments API unavailable")

        preview = PreviewService(failing, delay=DELAY)
        preview.state.count = 4

        await preview.refresh(source_rules("instagram"))

        assert preview.state.count is None
        assert preview.state.sample == []
        assert preview.state.loading is False
        assert preview.state.error == "segments API unavailable"

    @pytest.mark.asyncio
    async def test_stale_failure_is_ignored(self):
        evaluator = ControlledEvaluator()
        preview = PreviewService(evaluator, delay=DELAY)

        stale = preview.refresh(source_rules("a"))
        current = preview.refresh(source_rules("b"))
        await asyncio.sleep(0)

        evaluator.futures[1].set_result(EvaluationResult(count=5))
        await current
        evaluator.futures[0].set_exception(RuntimeError("late failure"))
        await stale

        assert preview.state.count == 5
        assert preview.state.error is None

    @pytest.mark.asyncio
    async def test_next_edit_recovers_after_failure(self):
        outcomes = [RuntimeError("boom"), EvaluationResult(count=2)]

        async def flaky(rule_set):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        preview = PreviewService(flaky, delay=DELAY)
        await preview.refresh(source_rules("a"))
        assert preview.state.error == "boom"

        await preview.refresh(source_rules("b"))
        assert preview.state.count == 2
        assert preview.state.error is None


class TestPreviewListener:

    @pytest.mark.asyncio
    async def test_on_change_sees_loading_then_result(self):
        states = []
        preview = PreviewService(RecordingEvaluator(count=3), delay=DELAY, on_change=states.append)

        preview.submit(source_rules("instagram"))
        await preview.wait_idle()

        assert [s.loading for s in states] == [True, False]
        assert states[-1].count == 3
