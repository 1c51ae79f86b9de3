"""
Models Package

Imports all SQLAlchemy models for application use.
"""

from app.models.base import BaseModel
from app.models.timeline import Timeline
from app.models.milestone import Milestone, MilestoneStatus
from app.models.decision_trace import DecisionTrace

__all__ = [
    'BaseModel',
    'Timeline',
    'Milestone',
    'MilestoneStatus',
    'DecisionTrace',
]
