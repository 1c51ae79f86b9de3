"""Field merge and derivation for the milestone being edited."""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from app.models.milestone import Milestone, MilestoneStatus
from app.utils.dates import end_date_for
from app.utils.merge import merge_json_objects

logger = logging.getLogger(__name__)


class MilestoneValidationError(Exception):
    """Raised when a requested milestone change is semantically invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message)


# Scheduling fields are derived, never accepted from a caller
COMPUTED_FIELDS = ("start_date", "end_date")


@dataclass
class ResolvedUpdate:
    """Fully resolved target state of the edited milestone."""
    values: Dict[str, Any] = field(default_factory=dict)
    duration_changed: bool = False
    status_changed: bool = False
    completion_date_changed: bool = False


def validate_completion_date(milestone: Milestone, changes: Dict[str, Any]) -> None:
    """
    Reject a completion date earlier than the stored start date.

    Raises:
        MilestoneValidationError: If completion_date < start_date
    """
    completion_date = changes.get("completion_date")
    if completion_date and completion_date < milestone.start_date:
        raise MilestoneValidationError(
            "The milestone completionDate should be greater or equal than the startDate.",
            details={
                "milestone_id": milestone.id,
                "start_date": milestone.start_date.isoformat(),
                "completion_date": completion_date.isoformat(),
            }
        )


def resolve_milestone_update(
    milestone: Milestone,
    changes: Dict[str, Any],
    today: date,
) -> ResolvedUpdate:
    """
    Merge requested changes into the stored milestone and derive the
    dependent fields.

    The completion date is validated beforehand with
    ``validate_completion_date``.

    Rules, in order:
    1. ``details`` is deep-merged into the stored payload.
    2. A duration change recomputes ``end_date`` from ``start_date``.
    3. An actual status change to completed defaults ``completion_date``
       to today; to active moves ``start_date`` to today.
    4. Without a status change, a new non-null ``completion_date`` forces
       the status to completed.

    Args:
        milestone: Stored milestone (not modified)
        changes: Requested field values, keyed by column name
        today: Current UTC date

    Returns:
        ResolvedUpdate with the values to write and change flags

    Raises:
        MilestoneValidationError: If a computed field is supplied
    """
    forbidden = [name for name in COMPUTED_FIELDS if name in changes]
    if forbidden:
        raise MilestoneValidationError(
            f"Computed fields cannot be set directly: {', '.join(forbidden)}",
            details={"fields": forbidden}
        )

    values = dict(changes)
    resolved = ResolvedUpdate(values=values)

    new_duration = values.get("duration")
    new_status = values.get("status")
    new_completion_date = values.get("completion_date")

    resolved.duration_changed = bool(new_duration) and new_duration != milestone.duration
    resolved.status_changed = bool(new_status) and new_status != milestone.status
    resolved.completion_date_changed = (
        bool(new_completion_date) and new_completion_date != milestone.completion_date
    )

    if "details" in values:
        values["details"] = merge_json_objects(milestone.details, values["details"])

    start_date = milestone.start_date

    if resolved.status_changed:
        if new_status == MilestoneStatus.COMPLETED.value:
            values["completion_date"] = new_completion_date or today
        if new_status == MilestoneStatus.ACTIVE.value:
            start_date = today
            values["start_date"] = today

    elif resolved.completion_date_changed:
        values["status"] = MilestoneStatus.COMPLETED.value

    if resolved.duration_changed or start_date != milestone.start_date:
        duration = new_duration if resolved.duration_changed else milestone.duration
        values["end_date"] = end_date_for(start_date, duration)

    logger.debug(
        "Resolved milestone %s update: duration_changed=%s status_changed=%s completion_date_changed=%s",
        milestone.id,
        resolved.duration_changed,
        resolved.status_changed,
        resolved.completion_date_changed,
    )
    return resolved


def apply_resolved_update(milestone: Milestone, resolved: ResolvedUpdate, user_id: Optional[int]) -> None:
    """Write resolved values onto the milestone and stamp the editor."""
    for key, value in resolved.values.items():
        setattr(milestone, key, value)
    if user_id is not None:
        milestone.updated_by = user_id
