"""Event system for the Kyozo waitlist.

Every form transition, pipeline stage and admin action produces a typed
FormEvent. Events are dispatched through an EventEmitter so that logging,
metrics or tests can observe the flow without the form or pipeline knowing
about them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import uuid

from .types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormEvent:
    """A single event in the waitlist flow.

    Attributes:
        event_id: Unique event identifier (e.g. "evt_3f2a...")
        type: Event type from EventType enum
        session_id: Form session the event belongs to, if any
        ts: UTC timestamp when the event occurred
        payload: Optional event-specific data (step numbers, ids, errors)

    Examples:
        >>> event = FormEvent.create(EventType.STEP_ADVANCED, "fs_001", {"from": 1, "to": 2})
        >>> event.type
        <EventType.STEP_ADVANCED: 'step.advanced'>
    """
    event_id: str
    type: EventType
    session_id: Optional[str]
    ts: datetime
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))

    @classmethod
    def create(
        cls,
        event_type: EventType,
        session_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "FormEvent":
        """Build an event stamped with a fresh id and the current UTC time."""
        return cls(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            session_id=session_id,
            ts=datetime.now(timezone.utc),
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "sessionId": self.session_id,
            "ts": self.ts.isoformat(),
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result


EventListener = Callable[[FormEvent], None]
"""Type alias for event listener callbacks.

Listeners are called synchronously when events are emitted and should not
perform long-running operations.
"""


class EventEmitter:
    """Dispatches events to type-specific and wildcard listeners.

    Listeners are called in registration order. A listener that raises is
    logged and skipped; it never affects other listeners or the caller.

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.STEP_ADVANCED, seen.append)
        >>> emitter.emit(FormEvent.create(EventType.STEP_ADVANCED, "fs_1"))
        >>> len(seen)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types."""
        self._any_listeners.append(listener)

    def emit(self, event: FormEvent) -> None:
        """Dispatch an event to all registered listeners.

        Type-specific listeners run first, then wildcard listeners.
        """
        for listener in list(self._listeners.get(event.type, [])) + list(self._any_listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event.type.value)


class EventRecorder:
    """Wildcard listener that keeps every event it sees, in order."""

    def __init__(self, emitter: Optional[EventEmitter] = None):
        self.events: List[FormEvent] = []
        if emitter is not None:
            emitter.on_any(self)

    def __call__(self, event: FormEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[FormEvent]:
        return [e for e in self.events if e.type == event_type]


def log_event(event: FormEvent) -> None:
    """Wildcard listener writing each event to the ``kyozo_waitlist.events`` log."""
    logger.info("%s %s", event.type.value, event.to_dict())


__all__ = [
    "FormEvent",
    "EventType",
    "EventListener",
    "EventEmitter",
    "EventRecorder",
    "log_event",
]
