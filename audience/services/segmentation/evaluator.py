"""
Segment Evaluator

Pure evaluation of segment rule sets against subscriber records. Nothing
here touches the database or mutates its inputs, so evaluation is safe to
run from any task or thread.

Subscriber records are duck-typed: anything exposing the attributes of
``audience.models.subscriber.Subscriber`` (``source``, ``tags``,
``subscribed_at``, ``engagement_score``, ``engagement_level``,
``emails_received``, ``last_emailed_at``, ``last_opened_at``) works.

Missing values: a field that resolves to ``None`` (never emailed, never
opened, no source) fails every operator, negated ones included. "Missing"
is not a comparable value, so ``not_equals`` / ``not_in`` against it are
false as well.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from audience.services.segmentation.fields import Operator, SegmentField, field_type, FieldType
from audience.services.segmentation.rules import Condition, MatchMode, RuleSet, Scalar, ScalarList

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10
SECONDS_PER_DAY = 24 * 60 * 60

FieldValue = Union[None, str, float, List[str]]


@dataclass
class EvaluationResult:
    """Match count plus the first matches in iteration order."""

    count: int = 0
    sample: List[Any] = field(default_factory=list)
    evaluated_at: Optional[datetime] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _days_since(moment: Optional[datetime], now: datetime) -> Optional[float]:
    if moment is None:
        return None
    elapsed = (_as_utc(now) - _as_utc(moment)).total_seconds()
    return float(math.floor(elapsed / SECONDS_PER_DAY))


def _to_number(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def resolve_field(subscriber: Any, segment_field: SegmentField, now: datetime) -> FieldValue:
    """Read ``segment_field`` off a subscriber record; ``None`` means missing."""
    if segment_field is SegmentField.SOURCE:
        source = getattr(subscriber, "source", None)
        return None if source is None else str(source)
    if segment_field is SegmentField.TAGS:
        return list(getattr(subscriber, "tags", None) or [])
    if segment_field is SegmentField.SUBSCRIBED_DAYS_AGO:
        return _days_since(getattr(subscriber, "subscribed_at", None), now)
    if segment_field is SegmentField.ENGAGEMENT_SCORE:
        score = getattr(subscriber, "engagement_score", None)
        return _to_number(0 if score is None else score)
    if segment_field is SegmentField.ENGAGEMENT_LEVEL:
        level = getattr(subscriber, "engagement_level", None)
        return "new" if level is None else str(level)
    if segment_field is SegmentField.EMAILS_RECEIVED:
        received = getattr(subscriber, "emails_received", None)
        return _to_number(0 if received is None else received)
    if segment_field is SegmentField.LAST_EMAILED_DAYS_AGO:
        return _days_since(getattr(subscriber, "last_emailed_at", None), now)
    if segment_field is SegmentField.LAST_OPENED_DAYS_AGO:
        return _days_since(getattr(subscriber, "last_opened_at", None), now)
    raise ValueError(f"Unknown segment field: {segment_field!r}")


def _compare_number(actual: float, operator: Operator, expected: Scalar) -> bool:
    target = _to_number(expected.value.strip())
    if target is None:
        return False
    if operator is Operator.EQUALS:
        return actual == target
    if operator is Operator.GREATER_THAN:
        return actual > target
    if operator is Operator.LESS_THAN:
        return actual < target
    return False


def _compare_text(actual: str, operator: Operator, expected: Union[Scalar, ScalarList]) -> bool:
    if isinstance(expected, ScalarList):
        if operator is Operator.IN:
            return actual in expected.present
        if operator is Operator.NOT_IN:
            return actual not in expected.present
        return False
    if operator is Operator.EQUALS:
        return actual == expected.value
    if operator is Operator.NOT_EQUALS:
        return actual != expected.value
    return False


def _compare_array(actual: List[str], operator: Operator, expected: Scalar) -> bool:
    if operator is Operator.CONTAINS:
        return expected.value in actual
    if operator is Operator.NOT_CONTAINS:
        return expected.value not in actual
    return False


def condition_matches(condition: Condition, subscriber: Any, now: Optional[datetime] = None) -> bool:
    """Whether a single evaluable condition holds for ``subscriber``.

    Non-evaluable (empty) conditions never match on their own; rule set
    evaluation filters them out before they are reached.
    """
    if not condition.is_evaluable:
        return False

    actual = resolve_field(subscriber, condition.field, now or utcnow())
    if actual is None:
        return False

    kind = field_type(condition.field)
    if kind is FieldType.NUMBER:
        return _compare_number(actual, condition.operator, condition.value)
    if kind is FieldType.ARRAY:
        return _compare_array(actual, condition.operator, condition.value)
    return _compare_text(actual, condition.operator, condition.value)


def rule_set_matches(rule_set: RuleSet, subscriber: Any, now: Optional[datetime] = None) -> bool:
    """Match a subscriber against every (``all``) or any (``any``) evaluable condition.

    A rule set with no evaluable conditions matches nothing.
    """
    return _matches(rule_set.match, rule_set.evaluable_conditions, subscriber, now or utcnow())


def _matches(match: MatchMode, conditions: Tuple[Condition, ...], subscriber: Any, now: datetime) -> bool:
    if not conditions:
        return False
    if match is MatchMode.ANY:
        return any(condition_matches(c, subscriber, now) for c in conditions)
    return all(condition_matches(c, subscriber, now) for c in conditions)


def iter_matches(rule_set: RuleSet, subscribers: Iterable[Any], now: Optional[datetime] = None) -> Iterator[Any]:
    """Lazily yield matching subscribers in iteration order."""
    conditions = rule_set.evaluable_conditions
    if not conditions:
        return
    now = now or utcnow()
    for subscriber in subscribers:
        if _matches(rule_set.match, conditions, subscriber, now):
            yield subscriber


def evaluate(
    rule_set: RuleSet,
    subscribers: Iterable[Any],
    now: Optional[datetime] = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> EvaluationResult:
    """
    Count the subscribers matching ``rule_set`` in a single pass.

    The sample holds the first ``sample_size`` matches in iteration order,
    so a fixed iteration order gives a fixed sample. A rule set with no
    evaluable conditions returns an empty result without reading
    ``subscribers`` at all.

    Args:
        rule_set: Rule set to evaluate
        subscribers: Any iterable of subscriber records (list, ORM cursor)
        now: Reference time for the ``*_days_ago`` fields
        sample_size: Maximum number of matches to keep

    Returns:
        EvaluationResult with the total count and the sample
    """
    now = now or utcnow()
    result = EvaluationResult(evaluated_at=now)
    if not rule_set.is_evaluable:
        return result

    for subscriber in iter_matches(rule_set, subscribers, now):
        result.count += 1
        if len(result.sample) < sample_size:
            result.sample.append(subscriber)

    logger.debug(
        "Evaluated rule set (%s, %d conditions): %d matches",
        rule_set.match.value, len(rule_set.conditions), result.count,
    )
    return result
