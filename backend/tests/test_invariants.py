"""
Invariant checker tests.

Deliberately corrupt a timeline and verify each invariant fails loudly with
its own error type.
"""
from datetime import date

import pytest

from app.utils.invariants import (
    BrokenDateContiguityError,
    DuplicateMilestoneOrderError,
    InconsistentMilestoneSpanError,
    InvariantChecker,
    InvariantViolationError,
    TimelineEndDateMismatchError,
    validate_orchestrator_name,
    validate_request_id,
)

from tests.factories import add_deleted_milestone, build_timeline, milestones_of


class TestTimelineInvariants:
    """Each invariant on a consistent and a corrupted timeline."""

    def test_consistent_timeline_passes(self, db):
        timeline = build_timeline(db, [5, 3, 4])
        checker = InvariantChecker(db)

        checker.check_all("update_milestone", {"timeline_id": timeline.id, "cascaded": True})

    def test_duplicate_order(self, db):
        timeline = build_timeline(db, [1, 1, 1])
        milestones_of(db, timeline.id)[2].order = 2
        db.flush()

        with pytest.raises(DuplicateMilestoneOrderError) as exc_info:
            InvariantChecker(db).check_order_uniqueness(timeline.id)
        assert exc_info.value.details["duplicates"] == {2: 2}
        assert "duplicate_milestone_order" in str(exc_info.value)

    def test_gap_breaks_contiguity(self, db):
        timeline = build_timeline(db, [5, 3])
        second = milestones_of(db, timeline.id)[1]
        second.start_date = date(2024, 1, 9)
        db.flush()

        with pytest.raises(BrokenDateContiguityError):
            InvariantChecker(db).check_date_contiguity(timeline.id)

    def test_contiguity_follows_completion_date(self, db):
        timeline = build_timeline(db, [5, 3])
        first, second = milestones_of(db, timeline.id)
        first.completion_date = date(2024, 1, 2)
        second.start_date = date(2024, 1, 3)
        db.flush()

        InvariantChecker(db).check_date_contiguity(timeline.id)

    def test_contiguity_from_order_ignores_upstream(self, db):
        timeline = build_timeline(db, [5, 3, 2])
        milestones_of(db, timeline.id)[1].start_date = date(2024, 1, 20)
        db.flush()

        with pytest.raises(BrokenDateContiguityError):
            InvariantChecker(db).check_date_contiguity(timeline.id)
        InvariantChecker(db).check_date_contiguity(timeline.id, from_order=2)

    def test_inconsistent_span(self, db):
        timeline = build_timeline(db, [5])
        milestones_of(db, timeline.id)[0].end_date = date(2024, 1, 9)
        db.flush()

        with pytest.raises(InconsistentMilestoneSpanError):
            InvariantChecker(db).check_milestone_spans(timeline.id)

    def test_cascaded_update_checks_spans(self, db):
        timeline = build_timeline(db, [5, 3])
        milestones_of(db, timeline.id)[0].end_date = date(2024, 1, 9)
        db.flush()
        checker = InvariantChecker(db)

        checker.check_all("update_milestone", {"timeline_id": timeline.id, "cascaded": False})
        with pytest.raises(InconsistentMilestoneSpanError):
            checker.check_all("update_milestone", {"timeline_id": timeline.id, "cascaded": True})

    def test_deleted_milestones_are_ignored(self, db):
        timeline = build_timeline(db, [5, 3])
        add_deleted_milestone(db, timeline, order=2, duration=30, start=date(2024, 3, 1))

        InvariantChecker(db).check_all(
            "update_milestone", {"timeline_id": timeline.id, "cascaded": True}
        )

    def test_timeline_end_date_mismatch(self, db):
        timeline = build_timeline(db, [5, 3])
        timeline.end_date = date(2024, 3, 1)
        db.flush()

        with pytest.raises(TimelineEndDateMismatchError):
            InvariantChecker(db).check_timeline_end_date(timeline.id)

    def test_all_errors_share_base(self):
        for error_cls in (
            DuplicateMilestoneOrderError,
            BrokenDateContiguityError,
            InconsistentMilestoneSpanError,
            TimelineEndDateMismatchError,
        ):
            assert issubclass(error_cls, InvariantViolationError)


class TestIdentifierValidation:

    def test_request_id(self):
        validate_request_id("req-1")
        with pytest.raises(ValueError):
            validate_request_id("")
        with pytest.raises(ValueError):
            validate_request_id("x" * 256)

    def test_orchestrator_name(self):
        validate_orchestrator_name("milestone_update_orchestrator")
        with pytest.raises(ValueError):
            validate_orchestrator_name("bad name!")
