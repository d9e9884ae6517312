"""
Event interface for the library core.

Services publish one event after every successful change to the catalog,
the user registry or the loan ledger. A presentation layer subscribes to
refresh whatever views depend on the changed data.
"""

import json
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from biblioteca.config.logging_config import get_logger

logger = get_logger(__name__)


class EventType(Enum):
    """Types of events that can be emitted by the event bus."""

    # Catalog events
    BOOK_ADDED = "book.added"
    BOOK_UPDATED = "book.updated"
    BOOK_DELETED = "book.deleted"

    # User registry events
    USER_ADDED = "user.added"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"

    # Loan ledger events
    LOAN_REGISTERED = "loan.registered"
    LOAN_RETURNED = "loan.returned"

    ERROR = "error"

    # Catch-all for unknown events
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, event_type_str: str) -> 'EventType':
        """Convert a string to an EventType enum value."""
        try:
            return next(e for e in cls if e.value == event_type_str)
        except StopIteration:
            logger.warning(f"Unknown event type: {event_type_str}")
            return cls.UNKNOWN


@dataclass
class Event:
    """An event published on an emitter."""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[int] = None

    def __post_init__(self):
        if self.id is None:
            self.id = uuid.uuid4().hex
        if self.created_at is None:
            self.created_at = int(time.time())

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a dictionary."""
        result = asdict(self)
        result['type'] = self.type.value
        return result

    def to_json(self) -> str:
        """Convert the event to a JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        """Create an event from a dictionary."""
        return cls(
            type=EventType.from_string(data.get('type', 'unknown')),
            data=data.get('data', {}),
            id=data.get('id'),
            created_at=data.get('created_at')
        )


# Type for event handlers
EventHandlerType = Callable[[Event], None]


class EventEmitter:
    """
    Event emitter for publishing and subscribing to events.

    A handler that raises is logged and skipped; the remaining handlers
    still run and the emitting operation is not affected.
    """

    def __init__(self):
        """Initialize the event emitter."""
        self._handlers: Dict[EventType, List[EventHandlerType]] = {}
        self._wildcard_handlers: List[EventHandlerType] = []

    def on(self, event_type: Union[EventType, str], handler: EventHandlerType) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event_type: The type of event to handle
            handler: The callback function to invoke when the event occurs
        """
        if isinstance(event_type, str):
            event_type = EventType.from_string(event_type)

        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered handler for event type: {event_type.value}")

    def on_any(self, handler: EventHandlerType) -> None:
        """Register a handler for all event types."""
        self._wildcard_handlers.append(handler)
        logger.debug("Registered wildcard event handler")

    def off(self, event_type: Union[EventType, str], handler: Optional[EventHandlerType] = None) -> None:
        """
        Remove a handler for a specific event type.

        Args:
            event_type: The type of event
            handler: The handler to remove. If None, removes all handlers for the event type.
        """
        if isinstance(event_type, str):
            event_type = EventType.from_string(event_type)

        if event_type not in self._handlers:
            return
        if handler is None:
            self._handlers[event_type] = []
            logger.debug(f"Removed all handlers for event type: {event_type.value}")
        elif handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
            logger.debug(f"Removed handler for event type: {event_type.value}")
        else:
            logger.warning(f"Handler not found for event type: {event_type.value}")

    def off_any(self, handler: Optional[EventHandlerType] = None) -> None:
        """Remove one wildcard handler, or all of them if ``handler`` is None."""
        if handler is None:
            self._wildcard_handlers = []
            logger.debug("Removed all wildcard handlers")
        elif handler in self._wildcard_handlers:
            self._wildcard_handlers.remove(handler)
            logger.debug("Removed wildcard handler")
        else:
            logger.warning("Wildcard handler not found")

    def emit(self, event: Event) -> None:
        """
        Emit an event to all registered handlers.

        Args:
            event: The event to emit
        """
        for handler in list(self._handlers.get(event.type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.type.value}: {str(e)}")

        for handler in list(self._wildcard_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in wildcard event handler for {event.type.value}: {str(e)}")


# Global event emitter instance
event_bus = EventEmitter()
