"""
Tests for the segment builder draft.
"""

import pytest

from audience.services.segmentation.builder import SegmentDraft
from audience.services.segmentation.errors import SegmentValidationError
from audience.services.segmentation.fields import Operator, SegmentField
from audience.services.segmentation.rules import (
    CONDITION_REQUIRED,
    NAME_REQUIRED,
    Condition,
    MatchMode,
    RuleSet,
    Scalar,
    ScalarList,
)


class SubmittedRuleSets:
    """Stand-in preview that records what the draft submits."""

    def __init__(self):
        self.rule_sets = []

    def submit(self, rule_set):
        self.rule_sets.append(rule_set)


@pytest.fixture
def preview():
    return SubmittedRuleSets()


@pytest.fixture
def draft(preview):
    return SegmentDraft(preview=preview)


def only_id(draft):
    (condition_id,) = draft.condition_ids
    return condition_id


class TestDraftDefaults:

    def test_new_draft_has_one_blank_source_condition(self, draft):
        condition = draft.condition(only_id(draft))
        assert condition == Condition(SegmentField.SOURCE, Operator.EQUALS, Scalar(""))
        assert draft.match is MatchMode.ALL
        assert not draft.is_editing

    def test_unknown_condition_id(self, draft):
        with pytest.raises(KeyError):
            draft.condition("missing")


class TestConditionRows:

    def test_add_condition(self, draft):
        new_id = draft.add_condition()
        assert draft.condition_ids[-1] == new_id
        assert len(draft.condition_ids) == 2

    def test_remove_condition(self, draft):
        first = only_id(draft)
        second = draft.add_condition()
        draft.remove_condition(first)
        assert draft.condition_ids == [second]

    def test_last_condition_is_kept(self, draft):
        condition_id = only_id(draft)
        draft.remove_condition(condition_id)
        assert draft.condition_ids == [condition_id]

    def test_set_field_resets_operator(self, draft):
        condition_id = only_id(draft)
        draft.set_value(condition_id, "instagram")
        draft.set_field(condition_id, SegmentField.TAGS)
        assert draft.condition(condition_id) == Condition(SegmentField.TAGS, Operator.CONTAINS, Scalar(""))

    def test_switching_to_in_keeps_typed_value(self, draft):
        condition_id = only_id(draft)
        draft.set_field(condition_id, SegmentField.ENGAGEMENT_LEVEL)
        draft.set_value(condition_id, "cold")
        draft.set_operator(condition_id, Operator.IN)
        assert draft.condition(condition_id).value == ScalarList(("cold",))

    def test_add_and_remove_values(self, draft):
        condition_id = only_id(draft)
        draft.set_operator(condition_id, Operator.IN)

        draft.add_value(condition_id, "  instagram ")
        draft.add_value(condition_id, "instagram")
        draft.add_value(condition_id, "   ")
        draft.add_value(condition_id, "podcast")
        assert draft.condition(condition_id).value == ScalarList(("instagram", "podcast"))

        draft.remove_value(condition_id, "instagram")
        assert draft.condition(condition_id).value == ScalarList(("podcast",))

    def test_add_value_ignored_for_single_value_operator(self, draft):
        condition_id = only_id(draft)
        draft.add_value(condition_id, "instagram")
        assert draft.condition(condition_id).value == Scalar("")

    def test_illegal_operator_rejected(self, draft):
        with pytest.raises(ValueError):
            draft.set_operator(only_id(draft), Operator.CONTAINS)


class TestPreviewSubmission:

    def test_every_edit_submits_current_rules(self, draft, preview):
        condition_id = only_id(draft)
        draft.set_value(condition_id, "instagram")
        draft.set_match(MatchMode.ANY)
        draft.add_condition()

        assert len(preview.rule_sets) == 3
        assert preview.rule_sets[-1] == draft.rule_set()
        assert preview.rule_sets[1].match is MatchMode.ANY

    def test_draft_without_preview(self):
        draft = SegmentDraft()
        draft.set_value(only_id(draft), "instagram")
        assert draft.rule_set().is_evaluable


class TestDraftOutput:

    def test_validate_requires_name(self, draft):
        draft.set_value(only_id(draft), "instagram")
        with pytest.raises(SegmentValidationError) as exc_info:
            draft.validate()
        assert exc_info.value.reason == NAME_REQUIRED

    def test_validate_requires_evaluable_condition(self, draft):
        draft.name = "Instagram"
        with pytest.raises(SegmentValidationError) as exc_info:
            draft.validate()
        assert exc_info.value.reason == CONDITION_REQUIRED

    def test_payload_omits_empty_conditions(self, draft):
        draft.name = "  Instagram VIPs "
        first = only_id(draft)
        draft.set_value(first, "instagram")
        second = draft.add_condition()
        draft.set_field(second, SegmentField.TAGS)

        assert draft.to_payload() == {
            "name": "Instagram VIPs",
            "description": "",
            "rules": {
                "match": "all",
                "conditions": [{"field": "source", "operator": "equals", "value": "instagram"}],
            },
        }
        assert len(draft.rule_set().conditions) == 2

    def test_from_segment(self):
        data = {
            "id": "seg-1",
            "name": "At risk",
            "description": None,
            "rules": {
                "match": "any",
                "conditions": [
                    {"field": "engagement_level", "operator": "in", "value": ["cold", "at_risk"]},
                    {"field": "last_opened_days_ago", "operator": "greater_than", "value": "30"},
                ],
            },
        }
        draft = SegmentDraft.from_segment(data)

        assert draft.is_editing
        assert draft.segment_id == "seg-1"
        assert draft.description == ""
        assert draft.rule_set() == RuleSet.from_dict(data["rules"])

    def test_from_segment_without_conditions_gets_blank_row(self):
        draft = SegmentDraft.from_segment({"id": "seg-2", "name": "Empty", "rules": {"match": "all"}})
        assert len(draft.condition_ids) == 1
