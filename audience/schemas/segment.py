"""
Segment Schemas
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional, Union, Any

from audience.schemas.subscriber import SubscriberSummary, SubscriberDetail
from audience.services.segmentation.fields import FieldType, Operator, SegmentField
from audience.services.segmentation.rules import Condition, MatchMode, RuleSet


class SegmentCondition(BaseModel):
    """Single (field, operator, value) condition."""

    field: SegmentField = Field(..., description="Subscriber field, e.g. 'source' or 'tags'")
    operator: Operator
    value: Union[str, list[str], None] = Field(
        None, description="Single value, or a list for 'in' / 'not_in'"
    )

    class Config:
        coerce_numbers_to_str = True

    @model_validator(mode="after")
    def check_operator_and_arity(self) -> "SegmentCondition":
        # Raises MalformedConditionError (a ValueError) for illegal combinations
        self.to_domain()
        return self

    def to_domain(self) -> Condition:
        return Condition.from_dict(
            {"field": self.field.value, "operator": self.operator.value, "value": self.value}
        )


class SegmentRuleSet(BaseModel):
    """Match mode plus ordered conditions."""

    match: MatchMode = MatchMode.ALL
    conditions: list[SegmentCondition] = Field(default_factory=list)

    def to_domain(self) -> RuleSet:
        return RuleSet(self.match, tuple(c.to_domain() for c in self.conditions))


class SegmentBase(BaseModel):
    """Base segment schema."""

    # Blank names are reported by the service with a specific message
    name: str = Field("", max_length=255)
    description: Optional[str] = None
    rules: SegmentRuleSet = Field(default_factory=SegmentRuleSet)


class SegmentCreate(SegmentBase):
    """Schema for creating a segment."""
    pass


class SegmentUpdate(SegmentBase):
    """Schema for replacing a segment definition."""
    pass


class SegmentResponse(BaseModel):
    """Segment response schema."""

    id: str
    name: str
    description: Optional[str] = None
    rules: dict[str, Any]
    subscriber_count: int = 0
    last_calculated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SegmentListResponse(BaseModel):
    """Segment list response."""

    items: list[SegmentResponse]
    total: int


class SegmentEvaluateRequest(BaseModel):
    """Rules to evaluate for a live preview."""

    rules: SegmentRuleSet


class SegmentEvaluateResponse(BaseModel):
    """Live preview result."""

    count: int
    subscribers: list[SubscriberSummary] = Field(default_factory=list)


class SegmentMembersResponse(BaseModel):
    """Page of subscribers currently matching a saved segment."""

    subscribers: list[SubscriberDetail]
    total: int
    page: int
    limit: int
    total_pages: int


class OperatorDefinitionResponse(BaseModel):
    value: Operator
    label: str
    multi_value: bool


class FieldDefinitionResponse(BaseModel):
    """Field the builder can offer, with its legal operators."""

    name: SegmentField
    label: str
    type: FieldType
    description: str = ""
    options: list[str] = Field(default_factory=list)
    operators: list[OperatorDefinitionResponse]
    default_operator: Operator


class SegmentFieldsResponse(BaseModel):
    fields: list[FieldDefinitionResponse]
