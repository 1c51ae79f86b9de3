"""Timeline end-date synchronization."""
import logging

from sqlalchemy.orm import Session

from app.models.milestone import Milestone
from app.models.timeline import Timeline

logger = logging.getLogger(__name__)


class TimelineSynchronizer:
    """Aligns a timeline's end date with its last milestone after a cascade."""

    def __init__(self, db: Session):
        self.db = db

    def sync(self, timeline: Timeline, last_milestone: Milestone) -> bool:
        """
        Update ``timeline.end_date`` when it differs from the last milestone's.

        Returns:
            True if the timeline was changed
        """
        if timeline.end_date == last_milestone.end_date:
            return False

        logger.debug(
            "Timeline %s end date %s -> %s",
            timeline.id,
            timeline.end_date,
            last_milestone.end_date,
        )
        timeline.end_date = last_milestone.end_date
        timeline.updated_by = last_milestone.updated_by
        self.db.flush()
        return True
