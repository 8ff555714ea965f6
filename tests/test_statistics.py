"""Tests for the statistics aggregator."""

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given, strategies as st

from stockchart.models.chart_data import ChartPoint, SummaryStatistics
from stockchart.models.errors import NumericCoercionError
from stockchart.services.statistics import summarize


def make_window(prices):
    start = datetime(2024, 1, 1, tzinfo=UTC)
    return tuple(
        ChartPoint(
            display_label=f"Jan {i + 1}",
            close_price=price,
            source_timestamp=start + timedelta(days=i),
        )
        for i, price in enumerate(prices)
    )


class TestSummarize:
    """Test suite for summarize."""

    def test_empty_window_returns_none(self):
        """An empty window yields no statistics rather than zeros."""
        assert summarize(()) is None
        assert summarize([]) is None

    def test_two_point_scenario(self):
        stats = summarize(make_window([200.5, 210.0]))

        assert stats == SummaryStatistics(
            current=210.0, maximum=210.0, minimum=200.5, average=205.25
        )

    def test_current_is_last_point_not_maximum(self):
        stats = summarize(make_window([300.0, 100.0, 150.0]))

        assert stats.current == 150.0
        assert stats.maximum == 300.0
        assert stats.minimum == 100.0

    def test_average_is_not_rounded(self):
        stats = summarize(make_window([1.0, 1.0, 2.0]))

        assert stats.average == pytest.approx(4 / 3, rel=1e-12)
        assert stats.average != round(stats.average, 2)

    def test_non_finite_price_is_rejected(self):
        with pytest.raises(NumericCoercionError):
            summarize(make_window([1.0, float("nan")]))

    @given(
        prices=st.lists(
            st.floats(min_value=0.01, max_value=1_000_000, allow_nan=False, allow_infinity=False),
            min_size=1,
            max_size=50,
        )
    )
    def test_summary_bounds(self, prices):
        """minimum <= average <= maximum and current is the last price."""
        stats = summarize(make_window(prices))

        assert stats.current == prices[-1]
        assert stats.maximum == max(prices)
        assert stats.minimum == min(prices)
        assert stats.minimum <= stats.average or stats.average == pytest.approx(stats.minimum)
        assert stats.average <= stats.maximum or stats.average == pytest.approx(stats.maximum)
