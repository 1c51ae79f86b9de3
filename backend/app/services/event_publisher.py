"""
Event publishing.

The message bus client is an external collaborator; this module defines the
interface the orchestrators publish through plus two in-process
implementations. Delivery guarantees (retry, durability) belong to the
concrete bus client.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an event could not be handed to the bus."""
    pass


@dataclass
class PublishedEvent:
    """An event accepted by a publisher."""
    name: str
    payload: Dict[str, Any]
    correlation_id: Optional[str]


class EventPublisher(ABC):
    """Publishes domain events to the message bus."""

    @abstractmethod
    def publish(
        self,
        event_name: str,
        payload: Dict[str, Any],
        correlation_id: Optional[str] = None
    ) -> None:
        """
        Publish one event.

        Args:
            event_name: Routing key (e.g. "milestone.updated")
            payload: JSON-serializable body
            correlation_id: Id of the request that produced the event

        Raises:
            NotificationError: If the event could not be published
        """
        pass


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Encode an event payload, rendering dates as ISO strings."""
    try:
        return json.dumps(payload, default=_json_default, sort_keys=True)
    except TypeError as e:
        raise NotificationError(f"Event payload is not serializable: {e}") from e


class InMemoryEventPublisher(EventPublisher):
    """Keeps published events in memory (tests, local development)."""

    def __init__(self):
        self.events: List[PublishedEvent] = []

    def publish(
        self,
        event_name: str,
        payload: Dict[str, Any],
        correlation_id: Optional[str] = None
    ) -> None:
        # Round-trip so stored payloads match what a bus consumer receives
        body = json.loads(serialize_payload(payload))
        self.events.append(PublishedEvent(event_name, body, correlation_id))


class LoggingEventPublisher(EventPublisher):
    """Writes events to the log instead of a bus (default when none is wired)."""

    def publish(
        self,
        event_name: str,
        payload: Dict[str, Any],
        correlation_id: Optional[str] = None
    ) -> None:
        logger.info(
            "Event %s (correlation_id=%s): %s",
            event_name,
            correlation_id,
            serialize_payload(payload),
        )
