"""Normalizer turning raw candle records into a chart window."""

import math
from collections.abc import Iterable
from datetime import UTC, datetime, tzinfo
from typing import Any

from stockchart.models.chart_data import ChartPoint, Granularity, RawObservation, Window
from stockchart.models.errors import NumericCoercionError, ParseError

DEFAULT_WINDOW_SIZE = 50

# Numeric timestamps at or above this magnitude are epoch milliseconds.
_MILLISECONDS_THRESHOLD = 1e11


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a source timestamp into an aware UTC datetime.

    Accepts ISO-8601 text (a trailing "Z" is allowed, naive values are UTC),
    epoch seconds or milliseconds, and datetime objects.

    Raises:
        ParseError: If the value cannot be read as a point in time
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ParseError(f"Invalid candle date: {value!r}")
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ParseError(f"Invalid candle date: {value!r}")
        seconds = value / 1000 if abs(value) >= _MILLISECONDS_THRESHOLD else value
        try:
            parsed = datetime.fromtimestamp(seconds, UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise ParseError(f"Invalid candle date: {value!r}") from e
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ParseError(f"Invalid candle date: {value!r}") from e
    else:
        raise ParseError(f"Invalid candle date: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def coerce_price(value: Any) -> float:
    """
    Read a close price as a finite float.

    Raises:
        NumericCoercionError: For unparsable text, non-numeric types, NaN or infinity
    """
    if isinstance(value, bool):
        raise NumericCoercionError(value)
    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        try:
            price = float(value.strip())
        except ValueError as e:
            raise NumericCoercionError(value) from e
    else:
        raise NumericCoercionError(value)

    if not math.isfinite(price):
        raise NumericCoercionError(value)
    return price


def format_label(timestamp: datetime, granularity: Granularity, tz: tzinfo = UTC) -> str:
    """Month and day, plus a 12-hour clock for hourly candles ("Jan 3, 09:30 AM")."""
    local = timestamp.astimezone(tz)
    label = f"{local:%b} {local.day}"
    if Granularity(granularity) is Granularity.HOURLY:
        label += f", {local:%I:%M %p}"
    return label


def normalize(
    raw: Iterable[RawObservation],
    granularity: Granularity,
    window_size: int = DEFAULT_WINDOW_SIZE,
    tz: tzinfo = UTC,
) -> Window:
    """
    Convert raw observations into the chart window.

    Points are sorted by source timestamp (never by label) and only then
    truncated to the most recent ``window_size`` entries.

    Args:
        raw: Raw observations in any order
        granularity: Granularity the observations were fetched for
        window_size: Maximum number of points kept
        tz: Timezone the labels are rendered in

    Returns:
        Tuple of ChartPoint, oldest first

    Raises:
        ParseError: If a timestamp cannot be parsed
        NumericCoercionError: If a close price is not a finite number
        ValueError: If window_size is not positive
    """
    if window_size <= 0:
        raise ValueError("window_size must be positive")

    granularity = Granularity(granularity)
    points = []
    for observation in raw:
        timestamp = parse_timestamp(observation.date)
        points.append(
            ChartPoint(
                display_label=format_label(timestamp, granularity, tz),
                close_price=coerce_price(observation.close),
                source_timestamp=timestamp,
            )
        )

    points.sort(key=lambda point: point.source_timestamp)
    return tuple(points[-window_size:])
