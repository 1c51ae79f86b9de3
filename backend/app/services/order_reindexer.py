"""Order reindexing for milestones moved to an occupied position."""
import logging

from sqlalchemy.orm import Session

from app.models.milestone import Milestone

logger = logging.getLogger(__name__)


class OrderReindexer:
    """
    Keeps milestone orders unique within a timeline after one milestone
    changes position.

    Neighbours are shifted by exactly one slot in a single bulk UPDATE,
    never saved row by row.
    """

    def __init__(self, db: Session):
        """
        Initialize order reindexer.

        Args:
            db: Database session (the caller owns the transaction)
        """
        self.db = db

    def count_at_order(self, timeline_id: int, order: int, exclude_id: int) -> int:
        """Count other milestones of the timeline at ``order``."""
        return self.db.query(Milestone).filter(
            Milestone.timeline_id == timeline_id,
            Milestone.id != exclude_id,
            Milestone.deleted_at.is_(None),
            Milestone.order == order,
        ).count()

    def reindex(
        self,
        timeline_id: int,
        milestone_id: int,
        old_order: int,
        new_order: int,
    ) -> int:
        """
        Shift neighbouring milestones so ``new_order`` belongs to the moved one.

        Moving up M -> K: orders M+1..K become M..K-1.
        Moving down M -> K: orders K..M-1 become K+1..M.

        Args:
            timeline_id: Owning timeline
            milestone_id: The moved milestone (already persisted at new_order)
            old_order: Order before the edit
            new_order: Order after the edit

        Returns:
            Number of shifted milestones (0 when nothing needed to move)
        """
        if old_order == new_order:
            return 0

        if self.count_at_order(timeline_id, new_order, milestone_id) == 0:
            logger.debug(
                "Order %s is free in timeline %s, no reindex needed",
                new_order,
                timeline_id,
            )
            return 0

        query = self.db.query(Milestone).filter(
            Milestone.timeline_id == timeline_id,
            Milestone.id != milestone_id,
            Milestone.deleted_at.is_(None),
        )

        if old_order < new_order:
            shifted = query.filter(
                Milestone.order.between(old_order + 1, new_order)
            ).update(
                {Milestone.order: Milestone.order - 1},
                synchronize_session="fetch",
            )
        else:
            shifted = query.filter(
                Milestone.order.between(new_order, old_order - 1)
            ).update(
                {Milestone.order: Milestone.order + 1},
                synchronize_session="fetch",
            )

        logger.debug(
            "Moved milestone %s from order %s to %s, shifted %s neighbours",
            milestone_id,
            old_order,
            new_order,
            shifted,
        )
        return shifted
