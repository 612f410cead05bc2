"""
Condition and rule set model for subscriber segments.

A condition's value is a tagged union: ``Scalar`` for single-valued
operators and ``ScalarList`` for ``in`` / ``not_in``. Conditions validate
themselves on construction, so a condition that exists is always legal for
its field; it may still be *empty* (a draft the operator has not filled in),
in which case it is not evaluable and is skipped by the evaluator.

Wire and storage format:

    {
        "match": "all",
        "conditions": [
            {"field": "source", "operator": "equals", "value": "instagram"},
            {"field": "engagement_level", "operator": "in", "value": ["cold", "at_risk"]}
        ]
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from audience.services.segmentation.errors import MalformedConditionError, SegmentValidationError
from audience.services.segmentation.fields import (
    Operator,
    SegmentField,
    default_operator,
    is_operator_allowed,
)


@dataclass(frozen=True)
class Scalar:
    """Single comparison value."""

    value: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.value.strip()

    def to_json(self) -> str:
        return self.value


@dataclass(frozen=True)
class ScalarList:
    """List of comparison values for ``in`` / ``not_in``."""

    values: Tuple[str, ...] = ()

    @property
    def present(self) -> Tuple[str, ...]:
        """Entries that take part in matching; blank entries never do."""
        return tuple(v for v in self.values if v.strip())

    @property
    def is_empty(self) -> bool:
        return not self.present

    def to_json(self) -> List[str]:
        return list(self.values)


ConditionValue = Union[Scalar, ScalarList]


def empty_value_for(operator: Operator) -> ConditionValue:
    return ScalarList() if Operator(operator).is_multi_value else Scalar()


def _scalar_text(raw: Any) -> str:
    # bool is an int subclass; "True" is never a meaningful segment value
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise MalformedConditionError(f"Unsupported condition value: {raw!r}")
    return raw if isinstance(raw, str) else str(raw)


def parse_value(raw: Any, operator: Operator) -> ConditionValue:
    """Build the tagged value for ``operator`` from its JSON form."""
    if raw is None:
        return empty_value_for(operator)
    if isinstance(raw, (list, tuple)):
        return ScalarList(tuple(_scalar_text(item) for item in raw))
    return Scalar(_scalar_text(raw))


class MatchMode(str, Enum):
    ALL = "all"
    ANY = "any"


@dataclass(frozen=True)
class Condition:
    """One (field, operator, value) predicate over a subscriber."""

    field: SegmentField
    operator: Operator
    value: ConditionValue = dataclass_field(default_factory=Scalar)

    def __post_init__(self):
        try:
            object.__setattr__(self, "field", SegmentField(self.field))
            object.__setattr__(self, "operator", Operator(self.operator))
        except ValueError as e:
            raise MalformedConditionError(str(e)) from e

        if not is_operator_allowed(self.field, self.operator):
            raise MalformedConditionError(
                f"Operator '{self.operator.value}' is not allowed for field '{self.field.value}'"
            )
        if self.operator.is_multi_value and not isinstance(self.value, ScalarList):
            raise MalformedConditionError(
                f"Operator '{self.operator.value}' requires a list of values"
            )
        if not self.operator.is_multi_value and not isinstance(self.value, Scalar):
            raise MalformedConditionError(
                f"Operator '{self.operator.value}' requires a single value"
            )

    @classmethod
    def for_field(cls, field: SegmentField) -> "Condition":
        """Blank condition on ``field`` using the field's default operator."""
        operator = default_operator(field)
        return cls(field, operator, empty_value_for(operator))

    @property
    def is_evaluable(self) -> bool:
        return not self.value.is_empty

    def with_field(self, field: SegmentField) -> "Condition":
        """Switch field; operator and value reset to the new field's defaults."""
        if SegmentField(field) == self.field:
            return self
        return Condition.for_field(field)

    def with_operator(self, operator: Operator) -> "Condition":
        """Switch operator on the same field, coercing the value's arity."""
        operator = Operator(operator)
        if operator == self.operator:
            return self

        value = self.value
        if operator.is_multi_value and isinstance(value, Scalar):
            value = ScalarList((value.value,)) if value.value else ScalarList()
        elif not operator.is_multi_value and isinstance(value, ScalarList):
            value = Scalar(value.values[0] if value.values else "")
        return Condition(self.field, operator, value)

    def with_value(self, value: Union[ConditionValue, str, Iterable[str]]) -> "Condition":
        if not isinstance(value, (Scalar, ScalarList)):
            value = parse_value(value if isinstance(value, str) else list(value), self.operator)
        return Condition(self.field, self.operator, value)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        try:
            field = SegmentField(data["field"])
            operator = Operator(data["operator"])
        except KeyError as e:
            raise MalformedConditionError(f"Condition is missing '{e.args[0]}'") from e
        except ValueError as e:
            raise MalformedConditionError(str(e)) from e
        return cls(field, operator, parse_value(data.get("value"), operator))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field.value,
            "operator": self.operator.value,
            "value": self.value.to_json(),
        }


@dataclass(frozen=True)
class RuleSet:
    """A match mode plus an ordered list of conditions."""

    match: MatchMode = MatchMode.ALL
    conditions: Tuple[Condition, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "match", MatchMode(self.match))
        object.__setattr__(self, "conditions", tuple(self.conditions))

    @property
    def evaluable_conditions(self) -> Tuple[Condition, ...]:
        return tuple(c for c in self.conditions if c.is_evaluable)

    @property
    def is_evaluable(self) -> bool:
        return any(c.is_evaluable for c in self.conditions)

    def evaluable_only(self) -> "RuleSet":
        """Copy of this rule set without the empty conditions."""
        return RuleSet(self.match, self.evaluable_conditions)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleSet":
        data = data or {}
        try:
            match = MatchMode(data.get("match") or MatchMode.ALL)
        except ValueError as e:
            raise MalformedConditionError(str(e)) from e
        conditions = data.get("conditions") or []
        return cls(match, tuple(Condition.from_dict(c) for c in conditions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match": self.match.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }


NAME_REQUIRED = "Segment name is required"
CONDITION_REQUIRED = "Add at least one condition with a value"


def validate_segment(name: Optional[str], rule_set: RuleSet) -> str:
    """Check a segment definition can be saved; returns the trimmed name."""
    clean_name = (name or "").strip()
    if not clean_name:
        raise SegmentValidationError(NAME_REQUIRED)
    if not rule_set.is_evaluable:
        raise SegmentValidationError(CONDITION_REQUIRED)
    return clean_name
