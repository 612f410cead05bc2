"""
Segment builder draft.

Holds the unsaved state of the segment editor: name, description, match
mode and the ordered condition rows. Every edit that changes the rule set is
forwarded to an attached PreviewService.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Tuple

from audience.services.segmentation.fields import Operator, SegmentField
from audience.services.segmentation.preview import PreviewService
from audience.services.segmentation.rules import Condition, MatchMode, RuleSet, ScalarList, validate_segment


def _row_id() -> str:
    return uuid.uuid4().hex[:8]


class SegmentDraft:
    """Editable segment definition, one condition row per builder line."""

    def __init__(
        self,
        name: str = "",
        description: str = "",
        match: MatchMode = MatchMode.ALL,
        conditions: Optional[List[Condition]] = None,
        segment_id: Optional[str] = None,
        preview: Optional[PreviewService] = None,
    ):
        self.name = name
        self.description = description
        self.match = MatchMode(match)
        self.segment_id = segment_id
        self.preview = preview
        self._rows: List[Tuple[str, Condition]] = [
            (_row_id(), c) for c in (conditions or [Condition.for_field(SegmentField.SOURCE)])
        ]

    @classmethod
    def from_segment(cls, data: Dict[str, Any], preview: Optional[PreviewService] = None) -> "SegmentDraft":
        """Load a saved segment (API JSON) for editing."""
        rule_set = RuleSet.from_dict(data.get("rules"))
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            match=rule_set.match,
            conditions=list(rule_set.conditions) or None,
            segment_id=data.get("id"),
            preview=preview,
        )

    @property
    def is_editing(self) -> bool:
        return self.segment_id is not None

    @property
    def condition_ids(self) -> List[str]:
        return [row_id for row_id, _ in self._rows]

    def condition(self, condition_id: str) -> Condition:
        for row_id, condition in self._rows:
            if row_id == condition_id:
                return condition
        raise KeyError(condition_id)

    # -------------------------------------------------------------------------
    # Rule editing
    # -------------------------------------------------------------------------

    def _replace(self, condition_id: str, condition: Condition) -> None:
        self._rows = [(row_id, condition if row_id == condition_id else c) for row_id, c in self._rows]
        self._changed()

    def add_condition(self) -> str:
        row_id = _row_id()
        self._rows.append((row_id, Condition.for_field(SegmentField.SOURCE)))
        self._changed()
        return row_id

    def remove_condition(self, condition_id: str) -> None:
        """Remove a row; the last remaining row is kept."""
        if len(self._rows) <= 1:
            return
        self._rows = [(row_id, c) for row_id, c in self._rows if row_id != condition_id]
        self._changed()

    def set_field(self, condition_id: str, field: SegmentField) -> None:
        self._replace(condition_id, self.condition(condition_id).with_field(field))

    def set_operator(self, condition_id: str, operator: Operator) -> None:
        self._replace(condition_id, self.condition(condition_id).with_operator(operator))

    def set_value(self, condition_id: str, value) -> None:
        self._replace(condition_id, self.condition(condition_id).with_value(value))

    def add_value(self, condition_id: str, value: str) -> None:
        """Append to a multi-valued condition; blanks and duplicates are ignored."""
        condition = self.condition(condition_id)
        value = value.strip()
        if not value or not isinstance(condition.value, ScalarList) or value in condition.value.values:
            return
        self._replace(condition_id, condition.with_value(ScalarList(condition.value.values + (value,))))

    def remove_value(self, condition_id: str, value: str) -> None:
        condition = self.condition(condition_id)
        if not isinstance(condition.value, ScalarList):
            return
        remaining = tuple(v for v in condition.value.values if v != value)
        self._replace(condition_id, condition.with_value(ScalarList(remaining)))

    def set_match(self, match: MatchMode) -> None:
        self.match = MatchMode(match)
        self._changed()

    def _changed(self) -> None:
        if self.preview is not None:
            self.preview.submit(self.rule_set())

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def rule_set(self) -> RuleSet:
        return RuleSet(self.match, tuple(c for _, c in self._rows))

    def evaluable_rule_set(self) -> RuleSet:
        return self.rule_set().evaluable_only()

    def validate(self) -> None:
        """Raise SegmentValidationError if the draft cannot be saved."""
        validate_segment(self.name, self.rule_set())

    def to_payload(self) -> Dict[str, Any]:
        """Request body for create/update; empty rows are left out."""
        return {
            "name": self.name.strip(),
            "description": self.description.strip(),
            "rules": self.evaluable_rule_set().to_dict(),
        }
