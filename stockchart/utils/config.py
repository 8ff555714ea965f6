"""Configuration management for the application."""

import os
from dataclasses import dataclass
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from stockchart.models.chart_data import Granularity

# Load environment variables from .env file
load_dotenv()


@dataclass
class SourceConfig:
    """Candle source configuration."""

    base_url: str = "https://chart.stockscan.io/candle/v3"
    instrument: str = "TSLA"
    exchange: str = "NASDAQ"
    request_timeout: float = 10.0  # Seconds


@dataclass
class ChartConfig:
    """Chart window and timeframe configuration."""

    window_size: int = 50
    default_granularity: str = "daily"
    display_timezone: str = "UTC"
    cancel_superseded: bool = False


@dataclass
class LoggingConfig:
    """Logging and event store configuration."""

    log_file: str | None = None
    event_store_max_size: int = 1000


class Config:
    """Main application configuration."""

    def __init__(self):
        self.source = SourceConfig(
            base_url=os.getenv("CHART_BASE_URL", "https://chart.stockscan.io/candle/v3").rstrip("/"),
            instrument=os.getenv("CHART_INSTRUMENT", "TSLA"),
            exchange=os.getenv("CHART_EXCHANGE", "NASDAQ"),
            request_timeout=float(os.getenv("CHART_REQUEST_TIMEOUT", "10")),
        )

        self.chart = ChartConfig(
            window_size=int(os.getenv("CHART_WINDOW_SIZE", "50")),
            default_granularity=os.getenv("CHART_DEFAULT_GRANULARITY", "daily").lower(),
            display_timezone=os.getenv("CHART_DISPLAY_TIMEZONE", "UTC"),
            cancel_superseded=os.getenv("CHART_CANCEL_SUPERSEDED", "false").lower() == "true",
        )

        self.logging = LoggingConfig(
            log_file=os.getenv("LOG_FILE") or None,
            event_store_max_size=int(os.getenv("EVENT_STORE_MAX_SIZE", "1000")),
        )

    @property
    def default_granularity(self) -> Granularity:
        """The granularity fetched when the controller starts."""
        return Granularity(self.chart.default_granularity)

    @property
    def display_zone(self) -> ZoneInfo:
        """Timezone used to render point labels."""
        return ZoneInfo(self.chart.display_timezone)

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if configuration is valid

        Raises:
            ValueError if configuration is invalid
        """
        parsed = urlparse(self.source.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"CHART_BASE_URL must be an http(s) URL: {self.source.base_url}")
        if not self.source.instrument:
            raise ValueError("CHART_INSTRUMENT environment variable is required")
        if not self.source.exchange:
            raise ValueError("CHART_EXCHANGE environment variable is required")
        if self.source.request_timeout <= 0:
            raise ValueError("CHART_REQUEST_TIMEOUT must be positive")
        if self.chart.window_size <= 0:
            raise ValueError("CHART_WINDOW_SIZE must be positive")

        try:
            Granularity(self.chart.default_granularity)
        except ValueError as e:
            raise ValueError(
                f"Invalid CHART_DEFAULT_GRANULARITY: {self.chart.default_granularity}"
            ) from e

        try:
            ZoneInfo(self.chart.display_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(
                f"Invalid CHART_DISPLAY_TIMEZONE: {self.chart.display_timezone}"
            ) from e

        return True


# Global config instance
config = Config()
