"""
Subscriber Segmentation

Rule model, evaluator, persistence and live preview for subscriber segments.
"""

from audience.services.segmentation.fields import (
    FieldType,
    Operator,
    SegmentField,
    FieldDefinition,
    field_type,
    operators_for,
    default_operator,
    field_definitions,
)
from audience.services.segmentation.rules import Condition, MatchMode, RuleSet, Scalar, ScalarList
from audience.services.segmentation.evaluator import (
    EvaluationResult,
    condition_matches,
    rule_set_matches,
    evaluate,
)
from audience.services.segmentation.errors import (
    MalformedConditionError,
    SegmentValidationError,
    SegmentNotFoundError,
    SegmentSaveError,
)
from audience.services.segmentation.segment_service import SegmentService
from audience.services.segmentation.preview import Debouncer, PreviewService, PreviewState
from audience.services.segmentation.builder import SegmentDraft
from audience.services.segmentation.client import SegmentsApiClient

__all__ = [
    "FieldType",
    "Operator",
    "SegmentField",
    "FieldDefinition",
    "field_type",
    "operators_for",
    "default_operator",
    "field_definitions",
    "Condition",
    "MatchMode",
    "RuleSet",
    "Scalar",
    "ScalarList",
    "EvaluationResult",
    "condition_matches",
    "rule_set_matches",
    "evaluate",
    "MalformedConditionError",
    "SegmentValidationError",
    "SegmentNotFoundError",
    "SegmentSaveError",
    "SegmentService",
    "Debouncer",
    "PreviewService",
    "PreviewState",
    "SegmentDraft",
    "SegmentsApiClient",
]
