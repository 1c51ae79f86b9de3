"""
Decision Trace Model

Audit trail of orchestrator executions.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.database import Base
from app.models.base import JSONType


class DecisionTrace(Base):
    """
    Step-by-step execution log of one accepted orchestration.

    Written in the same transaction as the changes it describes, so a
    rolled-back update leaves no trace row behind.
    Pure structured storage - no UI formatting.
    """
    __tablename__ = "decision_traces"

    id = Column(Integer, primary_key=True, index=True)

    # Correlation id of the request that produced this trace
    request_id = Column(String(255), nullable=False, index=True)

    # Orchestrator that created this trace
    orchestrator_name = Column(String(100), nullable=False, index=True)

    # Acting user
    user_id = Column(Integer, nullable=True, index=True)

    # Complete execution trace as structured JSON
    trace_json = Column(JSONType, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<DecisionTrace(request_id='{self.request_id}', orchestrator='{self.orchestrator_name}')>"
