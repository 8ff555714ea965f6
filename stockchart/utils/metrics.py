"""Metrics calculator for fetch activity recorded in the event store."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from stockchart.utils.event_store import EventStore, EventType


@dataclass
class Metrics:
    """Aggregated fetch metrics."""

    total_fetch_attempts: int
    successful_fetches: int
    failed_fetches: int
    success_rate: float
    average_fetch_duration_ms: float
    stale_responses_discarded: int
    state_transitions: int
    uptime_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return asdict(self)


class MetricsCalculator:
    """Calculates metrics from event store data."""

    def __init__(self, event_store: EventStore, start_time: Optional[datetime] = None):
        """
        Initialize the metrics calculator.

        Args:
            event_store: The event store to calculate metrics from
            start_time: Optional start time for uptime calculation (defaults to now)
        """
        self.event_store = event_store
        self.start_time = start_time or datetime.now(timezone.utc)

    def calculate(self) -> Metrics:
        """Calculate metrics from the event store."""
        events = self.event_store.get_all_events()

        fetch_completes = [e for e in events if e.event_type == EventType.FETCH_COMPLETE]
        total_fetch_attempts = len(fetch_completes)
        successful_fetches = len(
            [e for e in fetch_completes if e.context.get("status") == "success"]
        )
        failed_fetches = len(
            [e for e in fetch_completes if e.context.get("status") == "failed"]
        )

        success_rate = (
            (successful_fetches / total_fetch_attempts * 100)
            if total_fetch_attempts > 0
            else 0.0
        )

        fetch_durations = [
            e.duration_ms for e in fetch_completes if e.duration_ms is not None
        ]
        average_fetch_duration_ms = (
            sum(fetch_durations) / len(fetch_durations) if fetch_durations else 0.0
        )

        stale = len([e for e in events if e.event_type == EventType.STALE_DISCARDED])
        transitions = len([e for e in events if e.event_type == EventType.STATE_TRANSITION])

        uptime_seconds = int((datetime.now(timezone.utc) - self.start_time).total_seconds())

        return Metrics(
            total_fetch_attempts=total_fetch_attempts,
            successful_fetches=successful_fetches,
            failed_fetches=failed_fetches,
            success_rate=success_rate,
            average_fetch_duration_ms=average_fetch_duration_ms,
            stale_responses_discarded=stale,
            state_transitions=transitions,
            uptime_seconds=uptime_seconds,
        )
