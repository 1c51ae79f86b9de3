"""
Services package.

Services contain the individual steps of a milestone update.
They operate on a caller-owned session and never commit.

Services should:
    - Accept database session as parameter
    - Perform database operations (flush only)
    - Implement one business rule each
    - Return data or raise exceptions
"""

from app.services.milestone_merge import (
    MilestoneValidationError,
    ResolvedUpdate,
    apply_resolved_update,
    resolve_milestone_update,
    validate_completion_date,
)
from app.services.order_reindexer import OrderReindexer
from app.services.date_cascade import DateCascadePropagator
from app.services.timeline_sync import TimelineSynchronizer
from app.services.event_publisher import (
    EventPublisher,
    InMemoryEventPublisher,
    LoggingEventPublisher,
    NotificationError,
    PublishedEvent,
)

__all__ = [
    "MilestoneValidationError",
    "ResolvedUpdate",
    "apply_resolved_update",
    "resolve_milestone_update",
    "validate_completion_date",
    "OrderReindexer",
    "DateCascadePropagator",
    "TimelineSynchronizer",
    "EventPublisher",
    "InMemoryEventPublisher",
    "LoggingEventPublisher",
    "NotificationError",
    "PublishedEvent",
]
