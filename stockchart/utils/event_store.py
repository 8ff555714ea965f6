"""In-memory event store for fetch and controller activity."""

import threading
import uuid
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any


class EventType:
    """Event types recorded by the chart pipeline."""

    FETCH_START = "fetch_start"
    FETCH_COMPLETE = "fetch_complete"
    STATE_TRANSITION = "state_transition"
    STALE_DISCARDED = "stale_discarded"


@dataclass
class Event:
    """Represents a recorded event."""

    id: str
    timestamp: str
    trace_id: str | None
    event_type: str
    component: str
    message: str
    context: dict[str, Any]
    duration_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class EventStore:
    """Bounded in-memory event store; the oldest events fall off first."""

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self._events: deque[Event] = deque(maxlen=max_size)
        self._lock = threading.RLock()

    def add_event(
        self,
        event_type: str,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
        trace_id: str | None = None,
    ) -> Event:
        """
        Add an event to the store.

        Args:
            event_type: One of the EventType values
            component: Component that generated the event
            message: Event message
            context: Optional context fields
            duration_ms: Optional duration in milliseconds
            trace_id: Trace ID of the fetch this event belongs to, if any

        Returns:
            The created Event object
        """
        with self._lock:
            event = Event(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                trace_id=trace_id,
                event_type=event_type,
                component=component,
                message=message,
                context=context or {},
                duration_ms=duration_ms,
            )
            self._events.append(event)
            return event

    def get_recent_events(self, limit: int = 100) -> list[Event]:
        """Most recent events, oldest first."""
        with self._lock:
            return list(self._events)[-limit:] if limit > 0 else []

    def get_events_by_trace(self, trace_id: str) -> list[Event]:
        with self._lock:
            return [event for event in self._events if event.trace_id == trace_id]

    def get_events_by_type(self, event_type: str, limit: int = 100) -> list[Event]:
        with self._lock:
            matching = [event for event in self._events if event.event_type == event_type]
            return matching[-limit:] if limit > 0 else []

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._events)

    def get_all_events(self) -> list[Event]:
        with self._lock:
            return list(self._events)
