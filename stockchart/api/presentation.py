"""Render-facing view of the controller state."""

from typing import Optional

from pydantic import BaseModel

from stockchart.models.chart_data import FetchStatus, Granularity, SummaryStatistics
from stockchart.services.timeframe_controller import (
    ControllerState,
    Failed,
    Loaded,
    active_granularity,
    fetch_status,
)


class ChartPointView(BaseModel):
    """One point as handed to the chart widget."""
    label: str
    close: float
    close_text: str
    timestamp: str


class StatisticsView(BaseModel):
    """Summary figures rounded for display."""
    current: float
    maximum: float
    minimum: float
    average: float


class TimeframeOption(BaseModel):
    """One timeframe button."""
    key: Granularity
    label: str
    active: bool


class ChartSnapshot(BaseModel):
    """Everything the render boundary needs for one frame."""
    instrument: str
    exchange: str
    granularity: Optional[Granularity]
    granularity_label: Optional[str]
    status: FetchStatus
    title: Optional[str]
    points: list[ChartPointView]
    point_count: int
    statistics: Optional[StatisticsView]
    error: Optional[str]
    retryable: bool
    controls_enabled: bool


def format_price(value: float) -> str:
    """Tooltip price text, e.g. "$210.00"."""
    return f"${value:.2f}"


def round_statistics(statistics: SummaryStatistics | None) -> StatisticsView | None:
    """Round summary figures to two decimals for display."""
    if statistics is None:
        return None
    return StatisticsView(
        current=round(statistics.current, 2),
        maximum=round(statistics.maximum, 2),
        minimum=round(statistics.minimum, 2),
        average=round(statistics.average, 2),
    )


def timeframe_options(state: ControllerState) -> list[TimeframeOption]:
    active = active_granularity(state)
    return [
        TimeframeOption(key=g, label=g.label, active=g is active)
        for g in Granularity
    ]


def build_snapshot(state: ControllerState, instrument: str, exchange: str) -> ChartSnapshot:
    """
    Build the snapshot exposed to the chart for a controller state.

    Points and statistics are only present once a window has loaded; the
    error message only when the active fetch failed.
    """
    granularity = active_granularity(state)
    status = fetch_status(state)

    points: list[ChartPointView] = []
    statistics = None
    if isinstance(state, Loaded):
        points = [
            ChartPointView(
                label=point.display_label,
                close=point.close_price,
                close_text=format_price(point.close_price),
                timestamp=point.source_timestamp.isoformat().replace("+00:00", "Z"),
            )
            for point in state.window
        ]
        statistics = round_statistics(state.statistics)

    return ChartSnapshot(
        instrument=instrument,
        exchange=exchange,
        granularity=granularity,
        granularity_label=granularity.label if granularity else None,
        status=status,
        title=f"Price Trend - {granularity.label} View" if granularity else None,
        points=points,
        point_count=len(points),
        statistics=statistics,
        error=state.message if isinstance(state, Failed) else None,
        retryable=isinstance(state, Failed),
        controls_enabled=status is not FetchStatus.LOADING,
    )
