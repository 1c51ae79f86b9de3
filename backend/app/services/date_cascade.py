"""Date cascade for milestones downstream of an edited one."""
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.milestone import Milestone, MilestoneStatus
from app.utils.dates import end_date_for, next_start_date

logger = logging.getLogger(__name__)


class DateCascadePropagator:
    """
    Recomputes start and end dates of every milestone after the edited one.

    Rules:
    - Milestones are walked in ascending order
    - Each starts the day after its predecessor's completion date (if set)
      or end date
    - When the edited milestone's completion date changed, the first
      non-hidden downstream milestone becomes active
    - Hidden milestones still receive date updates
    """

    def __init__(self, db: Session):
        """
        Initialize date cascade propagator.

        Args:
            db: Database session (the caller owns the transaction)
        """
        self.db = db

    @staticmethod
    def should_cascade(original: Dict[str, Any], updated: Milestone) -> bool:
        """
        Whether an edit moved anything downstream milestones depend on.

        Order-only and text-only edits do not cascade.
        """
        return (
            original["completion_date"] != updated.completion_date
            or original["duration"] != updated.duration
            or original["end_date"] != updated.end_date
        )

    def propagate(self, original: Dict[str, Any], updated: Milestone) -> Milestone:
        """
        Cascade the edited milestone's dates to its downstream milestones.

        Args:
            original: Pre-edit snapshot of the edited milestone
            updated: Edited milestone, persisted at its new order

        Returns:
            The last milestone processed, or ``updated`` when nothing follows it
        """
        completion_date_changed = original["completion_date"] != updated.completion_date

        downstream = self.db.query(Milestone).filter(
            Milestone.timeline_id == updated.timeline_id,
            Milestone.deleted_at.is_(None),
            Milestone.order > updated.order,
        ).order_by(Milestone.order).all()

        start_date = next_start_date(updated.end_date, updated.completion_date)
        first_activated = False
        last = updated

        for milestone in downstream:
            if milestone.start_date != start_date:
                milestone.start_date = start_date
                milestone.updated_by = updated.updated_by

            end_date = end_date_for(start_date, milestone.duration)
            if milestone.end_date != end_date:
                milestone.end_date = end_date
                milestone.updated_by = updated.updated_by

            if completion_date_changed and not first_activated and not milestone.hidden:
                milestone.status = MilestoneStatus.ACTIVE.value
                first_activated = True
                logger.debug("Activated milestone %s after completion of %s", milestone.id, updated.id)

            start_date = next_start_date(milestone.end_date, milestone.completion_date)
            self.db.flush()
            last = milestone

        logger.debug(
            "Cascaded dates from milestone %s across %s downstream milestones",
            updated.id,
            len(downstream),
        )
        return last
