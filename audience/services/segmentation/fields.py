"""
Segmentable subscriber fields and the operators legal for each field type.

Every field has exactly one FieldType and the type alone decides which
operators a condition on that field may use.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


class FieldType(str, Enum):
    """Semantic type of a segmentable field."""

    TEXT = "text"
    ARRAY = "array"
    NUMBER = "number"
    ENUM = "enum"


class Operator(str, Enum):
    """Comparison operators available in segment conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"

    @property
    def is_multi_value(self) -> bool:
        """True when the operator compares against a list of values."""
        return self in (Operator.IN, Operator.NOT_IN)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class SegmentField(str, Enum):
    """Subscriber attributes a segment can filter on."""

    SOURCE = "source"
    TAGS = "tags"
    SUBSCRIBED_DAYS_AGO = "subscribed_days_ago"
    ENGAGEMENT_SCORE = "engagement_score"
    ENGAGEMENT_LEVEL = "engagement_level"
    EMAILS_RECEIVED = "emails_received"
    LAST_EMAILED_DAYS_AGO = "last_emailed_days_ago"
    LAST_OPENED_DAYS_AGO = "last_opened_days_ago"


ENGAGEMENT_LEVELS: Tuple[str, ...] = (
    "highly_engaged",
    "engaged",
    "cold",
    "at_risk",
    "churned",
    "new",
)


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of a field that can be used in segment conditions."""

    name: SegmentField
    label: str
    field_type: FieldType
    options: Tuple[str, ...] = ()
    description: str = ""

    @property
    def operators(self) -> List[Operator]:
        return operators_for_type(self.field_type)


FIELD_DEFINITIONS: Dict[SegmentField, FieldDefinition] = {
    SegmentField.SOURCE: FieldDefinition(
        SegmentField.SOURCE,
        "Source",
        FieldType.TEXT,
        description="Where the subscriber signed up",
    ),
    SegmentField.TAGS: FieldDefinition(
        SegmentField.TAGS,
        "Tags",
        FieldType.ARRAY,
        description="Tags attached to the subscriber",
    ),
    SegmentField.SUBSCRIBED_DAYS_AGO: FieldDefinition(
        SegmentField.SUBSCRIBED_DAYS_AGO,
        "Subscribed Days Ago",
        FieldType.NUMBER,
        description="Whole days since the subscriber signed up",
    ),
    SegmentField.ENGAGEMENT_SCORE: FieldDefinition(
        SegmentField.ENGAGEMENT_SCORE,
        "Engagement Score",
        FieldType.NUMBER,
        description="Externally computed engagement score",
    ),
    SegmentField.ENGAGEMENT_LEVEL: FieldDefinition(
        SegmentField.ENGAGEMENT_LEVEL,
        "Engagement Level",
        FieldType.ENUM,
        options=ENGAGEMENT_LEVELS,
        description="Engagement bucket derived from the score",
    ),
    SegmentField.EMAILS_RECEIVED: FieldDefinition(
        SegmentField.EMAILS_RECEIVED,
        "Emails Received",
        FieldType.NUMBER,
        description="Number of emails delivered to the subscriber",
    ),
    SegmentField.LAST_EMAILED_DAYS_AGO: FieldDefinition(
        SegmentField.LAST_EMAILED_DAYS_AGO,
        "Last Emailed Days Ago",
        FieldType.NUMBER,
        description="Whole days since the last email; unset if never emailed",
    ),
    SegmentField.LAST_OPENED_DAYS_AGO: FieldDefinition(
        SegmentField.LAST_OPENED_DAYS_AGO,
        "Last Opened Days Ago",
        FieldType.NUMBER,
        description="Whole days since the last open; unset if never opened",
    ),
}


def operators_for_type(field_type: FieldType) -> List[Operator]:
    """Operators legal for a field type, default operator first."""
    if field_type in (FieldType.TEXT, FieldType.ENUM):
        return [Operator.EQUALS, Operator.NOT_EQUALS, Operator.IN, Operator.NOT_IN]
    if field_type is FieldType.ARRAY:
        return [Operator.CONTAINS, Operator.NOT_CONTAINS]
    if field_type is FieldType.NUMBER:
        return [Operator.EQUALS, Operator.GREATER_THAN, Operator.LESS_THAN]
    raise ValueError(f"Unknown field type: {field_type!r}")


def get_field_definition(field: SegmentField) -> FieldDefinition:
    return FIELD_DEFINITIONS[SegmentField(field)]


def field_type(field: SegmentField) -> FieldType:
    return get_field_definition(field).field_type


def operators_for(field: SegmentField) -> List[Operator]:
    return operators_for_type(field_type(field))


def default_operator(field: SegmentField) -> Operator:
    return operators_for(field)[0]


def is_operator_allowed(field: SegmentField, operator: Operator) -> bool:
    return Operator(operator) in operators_for(field)


def field_definitions() -> List[FieldDefinition]:
    """Field catalogue in builder menu order."""
    return list(FIELD_DEFINITIONS.values())
