"""Request and response schemas."""

from app.schemas.milestone import (
    MilestoneResponse,
    MilestoneUpdateBody,
    MilestoneUpdateRequest,
)

__all__ = [
    "MilestoneResponse",
    "MilestoneUpdateBody",
    "MilestoneUpdateRequest",
]
