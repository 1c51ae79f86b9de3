"""Milestone model."""
import copy
import enum
from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, JSONType


class MilestoneStatus(str, enum.Enum):
    """Lifecycle status of a milestone"""
    DRAFT = "draft"
    PLANNED = "planned"
    ACTIVE = "active"
    BLOCKED = "blocked"
    IN_REVIEW = "in_review"
    PAUSED = "paused"
    COMPLETED = "completed"


# Columns excluded from snapshots, responses and events
SNAPSHOT_EXCLUDED_FIELDS = ("deleted_at", "deleted_by")


class Milestone(BaseModel):
    """
    A scheduled unit of a timeline.

    ``order`` is unique per timeline once an update completes. The
    uniqueness is maintained by the order reindexer rather than a database
    constraint, because the edited row moves into its new slot before the
    neighbouring rows are shifted.
    """
    __tablename__ = "milestones"

    timeline_id = Column(
        Integer,
        ForeignKey("timelines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=True)
    type = Column(String(45), nullable=False, default="generic")

    # Scheduling
    order = Column(Integer, nullable=False)
    duration = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    completion_date = Column(Date, nullable=True)

    status = Column(String(45), nullable=False, default=MilestoneStatus.PLANNED.value)
    hidden = Column(Boolean, nullable=False, default=False)

    # Merge-only structured payload
    details = Column(JSONType, nullable=True)

    # Status texts
    planned_text = Column(String(512), nullable=True)
    active_text = Column(String(512), nullable=True)
    completed_text = Column(String(512), nullable=True)
    blocked_text = Column(String(512), nullable=True)

    # Audit
    created_by = Column(Integer, nullable=False)
    updated_by = Column(Integer, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(Integer, nullable=True)

    timeline = relationship("Timeline", back_populates="milestones")

    __table_args__ = (
        Index("ix_milestones_timeline_order", "timeline_id", "order"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """
        Snapshot of the persisted columns, without soft-delete fields.

        Nested ``details`` is copied so later merges do not alter the
        snapshot.
        """
        snapshot = {}
        for column in self.__table__.columns:
            if column.key in SNAPSHOT_EXCLUDED_FIELDS:
                continue
            value = getattr(self, column.key)
            if column.key == "details" and value is not None:
                value = copy.deepcopy(value)
            snapshot[column.key] = value
        return snapshot

    def __repr__(self):
        return (
            f"<Milestone(id={self.id}, timeline_id={self.timeline_id}, "
            f"order={self.order}, status='{self.status}')>"
        )
