"""Milestone update orchestrator: edit one milestone and cascade the rest."""
import logging
from datetime import date
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from app.config import settings
from app.models.milestone import Milestone
from app.models.timeline import Timeline
from app.orchestrators.base import BaseOrchestrator, OrchestrationError
from app.services.date_cascade import DateCascadePropagator
from app.services.event_publisher import EventPublisher, LoggingEventPublisher
from app.services.milestone_merge import (
    apply_resolved_update,
    resolve_milestone_update,
    validate_completion_date,
)
from app.services.order_reindexer import OrderReindexer
from app.services.timeline_sync import TimelineSynchronizer
from app.utils.dates import utc_today
from app.utils.invariants import InvariantChecker

logger = logging.getLogger(__name__)


class MilestoneUpdateError(OrchestrationError):
    """Base exception for milestone update errors."""
    pass


class TimelineNotFoundError(MilestoneUpdateError):
    """Raised when the timeline does not exist."""
    pass


class MilestoneNotFoundError(MilestoneUpdateError):
    """Raised when the milestone does not exist under the given timeline."""
    pass


class MilestoneUpdateOrchestrator(BaseOrchestrator[Dict[str, Any]]):
    """
    Applies an edit to one milestone and brings the rest of its timeline
    back into a consistent state, atomically.

    Pipeline (one transaction):
    1. Lock the timeline row (serializes updates within a timeline)
    2. Load the milestone
    3. Validate the completion date against the stored start date
    4. Merge requested fields and derive dates/status; persist
    5. Reindex neighbours if the order changed
    6. Cascade dates downstream if completion date, duration or end date
       changed; then sync the timeline end date
    7. Check timeline invariants

    After commit exactly one event carrying the original and updated
    snapshots of the edited milestone is published. Cascade-affected
    milestones are not announced individually.
    """

    def __init__(
        self,
        db: Session,
        user_id: Optional[int] = None,
        publisher: Optional[EventPublisher] = None,
        today: Callable[[], date] = utc_today,
    ):
        """
        Initialize milestone update orchestrator.

        Args:
            db: Database session
            user_id: Acting user, stamped as updated_by
            publisher: Event bus collaborator
            today: Clock returning the current UTC date
        """
        super().__init__(db, user_id)
        self.publisher = publisher or LoggingEventPublisher()
        self.today = today
        self.reindexer = OrderReindexer(db)
        self.cascade = DateCascadePropagator(db)
        self.synchronizer = TimelineSynchronizer(db)
        self.invariants = InvariantChecker(db)

    @property
    def orchestrator_name(self) -> str:
        """Get orchestrator name for tracing."""
        return "milestone_update_orchestrator"

    def update_milestone(
        self,
        timeline_id: int,
        milestone_id: int,
        changes: Dict[str, Any],
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Update a milestone and cascade the consequences.

        Args:
            timeline_id: Owning timeline
            milestone_id: Milestone to edit
            changes: Requested field values keyed by column name
            correlation_id: Request id propagated to the event

        Returns:
            Resolved, persisted snapshot of the edited milestone

        Raises:
            TimelineNotFoundError: If the timeline does not exist
            MilestoneNotFoundError: If the milestone is not in the timeline
            MilestoneValidationError: If the requested change is invalid
            PersistenceError: If the storage layer fails
        """
        result = self.execute(
            request_id=correlation_id or str(uuid4()),
            input_data={
                "timeline_id": timeline_id,
                "milestone_id": milestone_id,
                "changes": changes,
            }
        )
        return result["updated"]

    def _execute_pipeline(self, context: Dict[str, Any]) -> Dict[str, Any]:
        input_data = context['input']
        timeline_id = input_data['timeline_id']
        milestone_id = input_data['milestone_id']
        changes = input_data['changes']

        # Step 1: Lock the timeline for the rest of the transaction
        with self._trace_step("lock_timeline"):
            timeline = self.db.query(Timeline).filter(
                Timeline.id == timeline_id,
                Timeline.deleted_at.is_(None),
            ).with_for_update().first()

            if not timeline:
                raise TimelineNotFoundError(f"Timeline not found for timeline id {timeline_id}")

        # Step 2: Load the milestone
        with self._trace_step("load_milestone"):
            milestone = self.db.query(Milestone).filter(
                Milestone.timeline_id == timeline_id,
                Milestone.id == milestone_id,
                Milestone.deleted_at.is_(None),
            ).first()

            if not milestone:
                raise MilestoneNotFoundError(f"Milestone not found for milestone id {milestone_id}")

        # Step 3: Validate against stored values
        with self._trace_step("validate_completion_date"):
            validate_completion_date(milestone, changes)

        original = milestone.to_dict()

        # Step 4: Merge, derive and persist the edited milestone
        with self._trace_step("merge_fields") as step:
            resolved = resolve_milestone_update(milestone, changes, self.today())
            apply_resolved_update(milestone, resolved, self.user_id)
            self.db.flush()
            step.details.update({
                "duration_changed": resolved.duration_changed,
                "status_changed": resolved.status_changed,
                "completion_date_changed": resolved.completion_date_changed,
            })

        # Step 5: Reindex orders
        if original["order"] != milestone.order:
            with self._trace_step("reindex_orders") as step:
                shifted = self.reindexer.reindex(
                    timeline_id=timeline_id,
                    milestone_id=milestone.id,
                    old_order=original["order"],
                    new_order=milestone.order,
                )
                step.details["shifted"] = shifted
        else:
            self.log_step("reindex_orders", status="skipped")

        # Step 6: Cascade dates and sync the timeline
        cascaded = self.cascade.should_cascade(original, milestone)
        if cascaded:
            with self._trace_step("cascade_dates") as step:
                last_milestone = self.cascade.propagate(original, milestone)
                step.details["last_milestone_id"] = last_milestone.id

            with self._trace_step("sync_timeline") as step:
                step.details["changed"] = self.synchronizer.sync(timeline, last_milestone)
        else:
            self.log_step("cascade_dates", status="skipped")

        # Step 7: Invariants
        if settings.enforce_invariants:
            with self._trace_step("check_invariants"):
                self.invariants.check_all(
                    operation="update_milestone",
                    context={
                        "timeline_id": timeline_id,
                        "cascaded": cascaded,
                        "from_order": milestone.order,
                    }
                )

        return {
            "original": original,
            "updated": milestone.to_dict(),
        }

    def _after_commit(self, result: Dict[str, Any], context: Dict[str, Any]) -> None:
        """Announce the edit once; a publish failure never undoes the commit."""
        updated = result["updated"]
        logger.debug("Sending event to bus for milestone %s", updated["id"])
        try:
            self.publisher.publish(
                settings.milestone_updated_event,
                {"original": result["original"], "updated": updated},
                correlation_id=context["request_id"],
            )
        except Exception:
            logger.exception(
                "Failed to publish %s for milestone %s (correlation_id=%s)",
                settings.milestone_updated_event,
                updated["id"],
                context["request_id"],
            )
        else:
            logger.info(
                "Milestone %s of timeline %s updated by user %s",
                updated["id"],
                updated["timeline_id"],
                self.user_id,
            )
