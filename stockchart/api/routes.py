"""API routes for the chart snapshot and timeframe controls."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from stockchart.api.dependencies import get_controller, get_event_store, get_metrics_calculator
from stockchart.api.error_handlers import create_invalid_granularity_error
from stockchart.api.presentation import (
    ChartSnapshot,
    TimeframeOption,
    build_snapshot,
    timeframe_options,
)
from stockchart.models.chart_data import Granularity
from stockchart.services.timeframe_controller import TimeframeController
from stockchart.utils.event_store import EventStore
from stockchart.utils.metrics import MetricsCalculator

router = APIRouter()


class TimeframeRequest(BaseModel):
    """Request body for switching the active timeframe."""
    granularity: str


def _snapshot(controller: TimeframeController) -> ChartSnapshot:
    return build_snapshot(
        controller.state,
        instrument=controller.instrument,
        exchange=controller.source.exchange,
    )


@router.get("/chart", response_model=ChartSnapshot)
async def get_chart(controller: TimeframeController = Depends(get_controller)):
    """Current window, statistics and fetch status."""
    return _snapshot(controller)


@router.get("/chart/timeframes", response_model=list[TimeframeOption])
async def get_timeframes(controller: TimeframeController = Depends(get_controller)):
    """Available timeframes with the active one flagged."""
    return timeframe_options(controller.state)


@router.post("/chart/timeframe", response_model=ChartSnapshot)
async def select_timeframe(
    body: TimeframeRequest,
    controller: TimeframeController = Depends(get_controller),
):
    """
    Switch the active timeframe.

    Returns the snapshot right after the switch, i.e. in the loading state;
    poll GET /chart for the loaded window.
    """
    try:
        granularity = Granularity(body.granularity.lower())
    except ValueError:
        raise create_invalid_granularity_error(body.granularity).to_http_exception()

    controller.select_granularity(granularity)
    return _snapshot(controller)


@router.post("/chart/retry", response_model=ChartSnapshot)
async def retry_chart(controller: TimeframeController = Depends(get_controller)):
    """Re-issue the fetch for a failed timeframe; ignored otherwise."""
    controller.retry_current()
    return _snapshot(controller)


@router.get("/debug/metrics")
async def get_metrics(calculator: MetricsCalculator = Depends(get_metrics_calculator)):
    """Aggregated fetch metrics."""
    return calculator.calculate().to_dict()


@router.get("/debug/events")
async def get_events(
    event_type: str | None = Query(None, description="Filter by event type"),
    limit: int = Query(100, ge=1, le=1000),
    event_store: EventStore = Depends(get_event_store),
):
    """Recent pipeline events, oldest first."""
    if event_type:
        events = event_store.get_events_by_type(event_type, limit=limit)
    else:
        events = event_store.get_recent_events(limit=limit)
    return {"events": [event.to_dict() for event in events], "total": len(events)}
