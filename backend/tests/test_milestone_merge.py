"""
Field merge and derivation tests.

Pure tests of the resolved target state for the edited milestone: no
session, no persistence.
"""
from datetime import date

import pytest

from app.models.milestone import Milestone, MilestoneStatus
from app.services.milestone_merge import (
    MilestoneValidationError,
    apply_resolved_update,
    resolve_milestone_update,
    validate_completion_date,
)
from app.utils.merge import merge_json_objects


TODAY = date(2024, 2, 1)


def make_milestone(**overrides) -> Milestone:
    values = dict(
        id=7,
        timeline_id=1,
        order=1,
        duration=5,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 5),
        completion_date=None,
        status=MilestoneStatus.PLANNED.value,
        hidden=False,
        details={"owner": "pm", "links": {"doc": "a", "sheet": "b"}, "tags": ["x"]},
        created_by=1,
        updated_by=1,
    )
    values.update(overrides)
    return Milestone(**values)


class TestMergeJsonObjects:
    """Deep merge of the details payload."""

    def test_nested_keys_are_merged(self):
        merged = merge_json_objects(
            {"owner": "pm", "links": {"doc": "a", "sheet": "b"}},
            {"links": {"doc": "z"}},
        )
        assert merged == {"owner": "pm", "links": {"doc": "z", "sheet": "b"}}

    def test_lists_and_scalars_replace(self):
        merged = merge_json_objects({"tags": ["x", "y"], "n": 1}, {"tags": ["z"], "n": 2})
        assert merged == {"tags": ["z"], "n": 2}

    def test_inputs_are_not_mutated(self):
        target = {"links": {"doc": "a"}}
        source = {"links": {"sheet": "b"}}
        merge_json_objects(target, source)
        assert target == {"links": {"doc": "a"}}
        assert source == {"links": {"sheet": "b"}}

    def test_missing_sides(self):
        assert merge_json_objects(None, {"a": 1}) == {"a": 1}
        assert merge_json_objects({"a": 1}, None) == {"a": 1}
        assert merge_json_objects(None, None) is None


class TestResolveMilestoneUpdate:
    """Derivation rules for the edited milestone."""

    def test_details_are_deep_merged(self):
        milestone = make_milestone()
        resolved = resolve_milestone_update(milestone, {"details": {"links": {"doc": "new"}}}, TODAY)
        assert resolved.values["details"] == {
            "owner": "pm",
            "links": {"doc": "new", "sheet": "b"},
            "tags": ["x"],
        }

    def test_duration_change_recomputes_end_date(self):
        milestone = make_milestone()
        resolved = resolve_milestone_update(milestone, {"duration": 10}, TODAY)
        assert resolved.duration_changed
        assert resolved.values["end_date"] == date(2024, 1, 10)
        assert "start_date" not in resolved.values

    def test_same_duration_is_not_a_change(self):
        resolved = resolve_milestone_update(make_milestone(), {"duration": 5}, TODAY)
        assert not resolved.duration_changed
        assert "end_date" not in resolved.values

    def test_computed_fields_are_rejected(self):
        with pytest.raises(MilestoneValidationError):
            resolve_milestone_update(make_milestone(), {"start_date": TODAY}, TODAY)

    def test_completion_before_start_is_rejected(self):
        with pytest.raises(MilestoneValidationError) as exc_info:
            validate_completion_date(make_milestone(), {"completion_date": date(2023, 12, 31)})
        assert "completionDate" in str(exc_info.value)

    def test_completion_on_start_date_is_accepted(self):
        validate_completion_date(make_milestone(), {"completion_date": date(2024, 1, 1)})
        resolved = resolve_milestone_update(make_milestone(), {"completion_date": date(2024, 1, 1)}, TODAY)
        assert resolved.values["completion_date"] == date(2024, 1, 1)

    def test_completed_status_defaults_completion_date_to_today(self):
        resolved = resolve_milestone_update(
            make_milestone(), {"status": MilestoneStatus.COMPLETED.value}, TODAY
        )
        assert resolved.status_changed
        assert resolved.values["completion_date"] == TODAY

    def test_completed_status_keeps_supplied_completion_date(self):
        resolved = resolve_milestone_update(
            make_milestone(),
            {"status": MilestoneStatus.COMPLETED.value, "completion_date": date(2024, 1, 4)},
            TODAY,
        )
        assert resolved.values["completion_date"] == date(2024, 1, 4)

    def test_active_status_moves_start_to_today(self):
        resolved = resolve_milestone_update(
            make_milestone(), {"status": MilestoneStatus.ACTIVE.value}, TODAY
        )
        assert resolved.values["start_date"] == TODAY
        assert resolved.values["end_date"] == date(2024, 2, 5)

    def test_completion_date_forces_completed_status(self):
        resolved = resolve_milestone_update(make_milestone(), {"completion_date": date(2024, 1, 3)}, TODAY)
        assert resolved.completion_date_changed
        assert resolved.values["status"] == MilestoneStatus.COMPLETED.value

    def test_explicit_status_wins_over_completion_date(self):
        resolved = resolve_milestone_update(
            make_milestone(),
            {"status": MilestoneStatus.BLOCKED.value, "completion_date": date(2024, 1, 3)},
            TODAY,
        )
        assert resolved.values["status"] == MilestoneStatus.BLOCKED.value

    def test_unchanged_status_is_not_a_transition(self):
        milestone = make_milestone(status=MilestoneStatus.ACTIVE.value)
        resolved = resolve_milestone_update(milestone, {"status": MilestoneStatus.ACTIVE.value}, TODAY)
        assert not resolved.status_changed
        assert "start_date" not in resolved.values

    def test_apply_stamps_editor(self):
        milestone = make_milestone()
        resolved = resolve_milestone_update(milestone, {"name": "Renamed", "duration": 2}, TODAY)
        apply_resolved_update(milestone, resolved, user_id=42)
        assert milestone.name == "Renamed"
        assert milestone.end_date == date(2024, 1, 2)
        assert milestone.updated_by == 42
