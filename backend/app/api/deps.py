"""
Request dependencies.

Authentication and permission rules are owned by external collaborators;
these dependencies only resolve the acting user and consult the permission
gate installed on the application.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.services.event_publisher import EventPublisher

logger = logging.getLogger(__name__)

# (user_id, permission, timeline_id) -> allowed
PermissionGate = Callable[[int, str, int], bool]


def allow_all(user_id: int, permission: str, timeline_id: int) -> bool:
    return True


def get_acting_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    """Acting user id, resolved upstream and forwarded in ``X-User-Id``."""
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing acting user",
        )
    return x_user_id


def get_request_id(request: Request) -> str:
    return request.state.request_id


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


def require_permission(permission: str):
    """Dependency factory checking ``permission`` for the path's timeline."""

    def checker(
        request: Request,
        timeline_id: int,
        user_id: int = Depends(get_acting_user_id),
    ) -> int:
        gate: PermissionGate = request.app.state.permission_gate
        if not gate(user_id, permission, timeline_id):
            logger.info("User %s denied %s on timeline %s", user_id, permission, timeline_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission {permission} required",
            )
        return user_id

    return checker
