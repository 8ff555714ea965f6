"""Summary statistics over a chart window."""

import math
from collections.abc import Sequence

from stockchart.models.chart_data import ChartPoint, SummaryStatistics
from stockchart.models.errors import NumericCoercionError


def summarize(window: Sequence[ChartPoint]) -> SummaryStatistics | None:
    """
    Derive current, high, low and mean price from a window.

    The window must already be in chronological order; ``current`` is the
    last point. No rounding is applied here.

    Returns:
        SummaryStatistics, or None for an empty window
    """
    if not window:
        return None

    prices = [point.close_price for point in window]
    for price in prices:
        if not math.isfinite(price):
            raise NumericCoercionError(price)

    return SummaryStatistics(
        current=prices[-1],
        maximum=max(prices),
        minimum=min(prices),
        average=math.fsum(prices) / len(prices),
    )
