"""Milestone endpoints."""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.api.deps import get_event_publisher, get_request_id, require_permission
from app.database import get_db
from app.orchestrators.milestone_update_orchestrator import MilestoneUpdateOrchestrator
from app.schemas.milestone import MilestoneResponse, MilestoneUpdateBody
from app.services.event_publisher import EventPublisher
from app.utils.responses import wrap_response

router = APIRouter(prefix="/timelines/{timeline_id}/milestones", tags=["milestones"])


@router.patch("/{milestone_id}", summary="Update a milestone")
def update_milestone(
    body: MilestoneUpdateBody,
    timeline_id: int = Path(gt=0),
    milestone_id: int = Path(gt=0),
    user_id: int = Depends(require_permission("milestone.edit")),
    request_id: str = Depends(get_request_id),
    publisher: EventPublisher = Depends(get_event_publisher),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Update a milestone, reorder its neighbours and cascade dates.

    Returns the resolved milestone in the standard response envelope.
    """
    orchestrator = MilestoneUpdateOrchestrator(db, user_id=user_id, publisher=publisher)
    updated = orchestrator.update_milestone(
        timeline_id=timeline_id,
        milestone_id=milestone_id,
        changes=body.param.to_changes(),
        correlation_id=request_id,
    )
    return wrap_response(request_id, MilestoneResponse.render(updated))
