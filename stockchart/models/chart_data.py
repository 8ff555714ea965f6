"""Chart data models for candle observations and the display window."""

import enum
from dataclasses import dataclass
from datetime import datetime


class Granularity(str, enum.Enum):
    """Sampling interval requested from the candle source."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        """Human readable name shown on timeframe buttons."""
        return self.value.capitalize()


class FetchStatus(str, enum.Enum):
    """Status of the fetch for the active granularity."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RawObservation:
    """One quote record as delivered by the source."""

    date: str | int | float
    close: str | int | float


@dataclass(frozen=True)
class ChartPoint:
    """Normalized, display-ready observation."""

    display_label: str
    close_price: float
    source_timestamp: datetime


# Oldest first, at most the configured window size.
Window = tuple[ChartPoint, ...]


@dataclass(frozen=True)
class SummaryStatistics:
    """Summary figures derived from a window. Values are not rounded."""

    current: float
    maximum: float
    minimum: float
    average: float
