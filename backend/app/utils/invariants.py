"""
Timeline invariants and validation utilities.

Enforces the scheduling constraints every milestone update must leave intact:
1. No two milestones of a timeline share an order
2. Each milestone starts the day after its predecessor finishes
3. Each milestone's end date matches its start date and duration
4. The timeline ends when its last milestone ends

Fail fast with explicit errors.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.milestone import Milestone
from app.models.timeline import Timeline
from app.utils.dates import end_date_for, next_start_date


class InvariantViolationError(Exception):
    """Base exception for invariant violations."""

    def __init__(self, invariant_name: str, message: str, details: dict = None):
        self.invariant_name = invariant_name
        self.details = details or {}
        super().__init__(f"[INVARIANT VIOLATION: {invariant_name}] {message}")


class DuplicateMilestoneOrderError(InvariantViolationError):
    """Raised when two milestones of a timeline share the same order."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("duplicate_milestone_order", message, details)


class BrokenDateContiguityError(InvariantViolationError):
    """Raised when a milestone does not start the day after its predecessor."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("broken_date_contiguity", message, details)


class InconsistentMilestoneSpanError(InvariantViolationError):
    """Raised when end_date disagrees with start_date and duration."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("inconsistent_milestone_span", message, details)


class TimelineEndDateMismatchError(InvariantViolationError):
    """Raised when the timeline end date differs from its last milestone's."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("timeline_end_date_mismatch", message, details)


class InvariantChecker:
    """
    Central invariant checker for timeline consistency.

    Usage:
        checker = InvariantChecker(db)
        checker.check_all(operation="update_milestone", context={...})
    """

    def __init__(self, db: Session):
        """
        Initialize invariant checker.

        Args:
            db: Database session
        """
        self.db = db

    def _ordered_milestones(self, timeline_id: int) -> List[Milestone]:
        return self.db.query(Milestone).filter(
            Milestone.timeline_id == timeline_id,
            Milestone.deleted_at.is_(None),
        ).order_by(Milestone.order, Milestone.id).all()

    def check_order_uniqueness(self, timeline_id: int) -> None:
        """
        Invariant: exactly one milestone per (timeline_id, order).

        Args:
            timeline_id: Timeline to inspect

        Raises:
            DuplicateMilestoneOrderError: If any order value is shared
        """
        duplicates = self.db.query(
            Milestone.order, func.count(Milestone.id)
        ).filter(
            Milestone.timeline_id == timeline_id,
            Milestone.deleted_at.is_(None),
        ).group_by(
            Milestone.order
        ).having(
            func.count(Milestone.id) > 1
        ).all()

        if duplicates:
            raise DuplicateMilestoneOrderError(
                f"Timeline {timeline_id} has milestones sharing an order",
                details={
                    "timeline_id": timeline_id,
                    "duplicates": {order: count for order, count in duplicates},
                }
            )

    def check_milestone_spans(self, timeline_id: int) -> None:
        """
        Invariant: end_date = start_date + duration - 1 for every milestone.

        Raises:
            InconsistentMilestoneSpanError: On the first inconsistent milestone
        """
        for milestone in self._ordered_milestones(timeline_id):
            expected = end_date_for(milestone.start_date, milestone.duration)
            if milestone.end_date != expected:
                raise InconsistentMilestoneSpanError(
                    f"Milestone {milestone.id} ends on {milestone.end_date}, expected {expected}",
                    details={
                        "milestone_id": milestone.id,
                        "start_date": milestone.start_date.isoformat(),
                        "duration": milestone.duration,
                        "end_date": milestone.end_date.isoformat(),
                    }
                )

    def check_date_contiguity(
        self,
        timeline_id: int,
        from_order: Optional[int] = None
    ) -> None:
        """
        Invariant: each milestone starts the day after its predecessor's
        completion date (if set) or end date.

        Args:
            timeline_id: Timeline to inspect
            from_order: Only check milestones with an order greater than this

        Raises:
            BrokenDateContiguityError: On the first gap or overlap found
        """
        previous = None
        for milestone in self._ordered_milestones(timeline_id):
            if previous is not None and (from_order is None or milestone.order > from_order):
                expected = next_start_date(previous.end_date, previous.completion_date)
                if milestone.start_date != expected:
                    raise BrokenDateContiguityError(
                        f"Milestone {milestone.id} starts on {milestone.start_date}, expected {expected}",
                        details={
                            "milestone_id": milestone.id,
                            "previous_milestone_id": previous.id,
                            "start_date": milestone.start_date.isoformat(),
                            "expected_start_date": expected.isoformat(),
                        }
                    )
            previous = milestone

    def check_timeline_end_date(self, timeline_id: int) -> None:
        """
        Invariant: timeline.end_date equals its highest-order milestone's end date.

        Raises:
            TimelineEndDateMismatchError: If the dates differ
        """
        timeline = self.db.query(Timeline).filter(
            Timeline.id == timeline_id,
            Timeline.deleted_at.is_(None),
        ).first()
        milestones = self._ordered_milestones(timeline_id)
        if timeline is None or not milestones:
            return

        last = milestones[-1]
        if timeline.end_date != last.end_date:
            raise TimelineEndDateMismatchError(
                f"Timeline {timeline_id} ends on {timeline.end_date}, "
                f"last milestone {last.id} ends on {last.end_date}",
                details={
                    "timeline_id": timeline_id,
                    "timeline_end_date": timeline.end_date.isoformat() if timeline.end_date else None,
                    "last_milestone_id": last.id,
                    "last_milestone_end_date": last.end_date.isoformat(),
                }
            )

    def check_all(
        self,
        operation: str,
        context: dict
    ) -> None:
        """
        Check all relevant invariants for an operation.

        Args:
            operation: Operation name (only "update_milestone" has checks)
            context: Operation context with required fields

        Raises:
            InvariantViolationError: If any invariant is violated
        """
        timeline_id = context["timeline_id"]

        if operation == "update_milestone":
            self.check_order_uniqueness(timeline_id)
            if context.get("cascaded"):
                self.check_milestone_spans(timeline_id)
                self.check_date_contiguity(timeline_id, from_order=context.get("from_order"))
                self.check_timeline_end_date(timeline_id)


# Convenience functions for direct usage

def check_order_uniqueness(db: Session, timeline_id: int) -> None:
    """Check order uniqueness invariant."""
    InvariantChecker(db).check_order_uniqueness(timeline_id)


def check_date_contiguity(db: Session, timeline_id: int, from_order: Optional[int] = None) -> None:
    """Check date contiguity invariant."""
    InvariantChecker(db).check_date_contiguity(timeline_id, from_order)


def check_timeline_end_date(db: Session, timeline_id: int) -> None:
    """Check timeline end date invariant."""
    InvariantChecker(db).check_timeline_end_date(timeline_id)


def validate_request_id(request_id: str) -> None:
    """
    Utility helper: Validate request_id format.

    Args:
        request_id: Request identifier to validate

    Raises:
        ValueError: If request_id is invalid
    """
    if not request_id:
        raise ValueError("request_id cannot be empty")

    if not isinstance(request_id, str):
        raise ValueError(f"request_id must be a string, got {type(request_id)}")

    if len(request_id) > 255:
        raise ValueError(f"request_id too long (max 255 chars, got {len(request_id)})")


def validate_orchestrator_name(orchestrator_name: str) -> None:
    """
    Utility helper: Validate orchestrator name format.

    Args:
        orchestrator_name: Orchestrator name to validate

    Raises:
        ValueError: If orchestrator_name is invalid
    """
    if not orchestrator_name:
        raise ValueError("orchestrator_name cannot be empty")

    if len(orchestrator_name) > 100:
        raise ValueError(f"orchestrator_name too long (max 100 chars, got {len(orchestrator_name)})")

    if not orchestrator_name.replace('_', '').isalnum():
        raise ValueError("orchestrator_name must contain only alphanumeric characters and underscores")
