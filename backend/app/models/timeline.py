"""Timeline model."""
from sqlalchemy import Column, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class Timeline(BaseModel):
    """
    Ordered container of milestones.

    ``end_date`` is derived: after any cascade it equals the end date of the
    highest-order milestone.
    """
    __tablename__ = "timelines"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    created_by = Column(Integer, nullable=False)
    updated_by = Column(Integer, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(Integer, nullable=True)

    milestones = relationship(
        "Milestone",
        back_populates="timeline",
        order_by="Milestone.order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Timeline(id={self.id}, name='{self.name}', end_date={self.end_date})>"
