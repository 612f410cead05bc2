"""
Live segment preview.

The builder submits the draft rule set on every edit. Submissions are
debounced so that only the rule set left standing after a quiet period is
evaluated, and every evaluation that is issued is stamped with a generation
number. A finished evaluation is applied only when its generation is still
the latest one issued; anything older is dropped on arrival.

Superseded evaluations are never aborted, only ignored, so the evaluate
callable does not need to support cancellation. The same fencing works for
a remote call (``SegmentsApiClient.evaluate``) or an in-process one
(``SegmentService.evaluate``).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, List, Optional, Set, TypeVar

from audience.config import settings
from audience.services.segmentation.evaluator import EvaluationResult
from audience.services.segmentation.rules import RuleSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

EvaluateFn = Callable[[RuleSet], Awaitable[EvaluationResult]]


class Debouncer(Generic[T]):
    """
    Emit only the last submitted value after ``delay`` seconds of silence.

    Each ``submit`` restarts the timer. The callback runs on the event loop
    with the value that was current when the timer expired.
    """

    def __init__(self, delay: float, callback: Callable[[T], Any]):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._value: Optional[T] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def submit(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._value = value
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        value, self._value, self._handle = self._value, None, None
        self._callback(value)

    def flush(self) -> None:
        """Emit the pending value now instead of waiting for the timer."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._value = None

    async def wait(self) -> None:
        """Wait until no emission is pending."""
        loop = asyncio.get_running_loop()
        while self._handle is not None:
            await asyncio.sleep(max(0.0, self._handle.when() - loop.time()))
            # Let the timer callback run if it is due
            await asyncio.sleep(0)


@dataclass
class PreviewState:
    """What the builder shows next to the rule editor.

    ``count`` is None when there is no result to show (no evaluable
    conditions yet, or the last evaluation failed).
    """

    count: Optional[int] = None
    sample: List[Any] = field(default_factory=list)
    loading: bool = False
    generation: int = 0
    error: Optional[str] = None


class PreviewService:
    """Debounced, generation-fenced live evaluation of a draft rule set."""

    def __init__(
        self,
        evaluate: EvaluateFn,
        delay: Optional[float] = None,
        sample_size: Optional[int] = None,
        on_change: Optional[Callable[[PreviewState], Any]] = None,
    ):
        if delay is None:
            delay = settings.SEGMENT_PREVIEW_DEBOUNCE_MS / 1000
        self._evaluate = evaluate
        self._debouncer: Debouncer[RuleSet] = Debouncer(delay, self._issue)
        self._sample_size = sample_size or settings.SEGMENT_PREVIEW_SAMPLE_SIZE
        self._on_change = on_change
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()
        self.state = PreviewState()
        self.discarded = 0

    @property
    def generation(self) -> int:
        """Latest generation issued."""
        return self._generation

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, rule_set: RuleSet) -> None:
        """Queue ``rule_set`` for evaluation once edits go quiet."""
        self._debouncer.submit(rule_set)

    def refresh(self, rule_set: RuleSet) -> Optional[asyncio.Task]:
        """Evaluate ``rule_set`` immediately, superseding anything pending."""
        self._debouncer.cancel()
        return self._issue(rule_set)

    def _issue(self, rule_set: RuleSet) -> Optional[asyncio.Task]:
        self._generation += 1
        generation = self._generation

        if not rule_set.is_evaluable:
            # Nothing to ask; still fences off results already in flight
            self._apply(PreviewState(generation=generation))
            return None

        self._apply(replace(self.state, loading=True))
        task = asyncio.ensure_future(self._run(generation, rule_set.evaluable_only()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int, rule_set: RuleSet) -> None:
        try:
            result = await self._evaluate(rule_set)
        except Exception as e:
            if not self._is_current(generation):
                self.discarded += 1
                return
            logger.warning("Segment preview generation %d failed: %s", generation, e)
            self._apply(PreviewState(generation=generation, error=str(e) or type(e).__name__))
            return

        if not self._is_current(generation):
            self.discarded += 1
            logger.debug(
                "Discarding stale preview generation %d (latest %d)", generation, self._generation
            )
            return

        self._apply(
            PreviewState(
                count=result.count,
                sample=list(result.sample)[: self._sample_size],
                generation=generation,
            )
        )

    def _apply(self, state: PreviewState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(state)

    async def wait_idle(self) -> None:
        """Wait for the pending debounce and every in-flight evaluation."""
        while self._debouncer.pending or self._tasks:
            await self._debouncer.wait()
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Drop any pending submission. In-flight evaluations finish unobserved."""
        self._debouncer.cancel()
        self._generation += 1
