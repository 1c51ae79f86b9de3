"""
Orchestrators package.

Orchestrators coordinate multiple services to implement complex workflows.
They own the transaction: services flush, orchestrators commit or roll back.

Orchestrators should:
    - Coordinate multiple services
    - Run the whole workflow as one unit of work
    - Trigger side effects (events) only after commit

Difference between Services and Orchestrators:
    - Services: Single-responsibility, focused on one step of the workflow
    - Orchestrators: Multi-service coordination, transaction boundaries
"""

from app.orchestrators.base import (
    BaseOrchestrator,
    OrchestrationError,
    PersistenceError,
)
from app.orchestrators.milestone_update_orchestrator import (
    MilestoneUpdateOrchestrator,
    MilestoneUpdateError,
    MilestoneNotFoundError,
    TimelineNotFoundError,
)

__all__ = [
    "BaseOrchestrator",
    "OrchestrationError",
    "PersistenceError",
    "MilestoneUpdateOrchestrator",
    "MilestoneUpdateError",
    "MilestoneNotFoundError",
    "TimelineNotFoundError",
]
