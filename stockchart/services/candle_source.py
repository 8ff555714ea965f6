"""Candle source adapter for the stockscan chart service."""

import time
from typing import Any

import httpx

from stockchart.models.chart_data import Granularity, RawObservation
from stockchart.models.errors import ChartDataError, NetworkFailure, ParseError, TransportError
from stockchart.utils.config import config
from stockchart.utils.event_store import EventStore, EventType
from stockchart.utils.logger import StructuredLogger
from stockchart.utils.trace_context import traced


class CandleSourceAdapter:
    """Fetches raw candle records for one (instrument, granularity) pair."""

    def __init__(
        self,
        base_url: str | None = None,
        exchange: str | None = None,
        timeout: float | None = None,
        event_store: EventStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            base_url: Candle API root, defaults to the configured one
            exchange: Exchange segment of the URL, defaults to the configured one
            timeout: Request timeout in seconds
            event_store: Optional store receiving fetch events
            transport: Optional httpx transport, used to stub the network
        """
        self.base_url = (base_url or config.source.base_url).rstrip("/")
        self.exchange = exchange or config.source.exchange
        self.timeout = timeout if timeout is not None else config.source.request_timeout
        self.event_store = event_store
        self.transport = transport
        self.logger = StructuredLogger("CandleSourceAdapter", config.logging.log_file)

    def build_url(self, instrument: str, granularity: Granularity) -> str:
        """Return the request URL for an instrument and granularity."""
        return f"{self.base_url}/{instrument}/{Granularity(granularity).value}/{self.exchange}"

    async def fetch_observations(
        self, instrument: str, granularity: Granularity
    ) -> list[RawObservation]:
        """
        Fetch raw candle records. Performs no retries.

        Args:
            instrument: Instrument identifier (e.g. "TSLA")
            granularity: Requested sampling interval

        Returns:
            Raw observations in source order; empty if the body has no "candles"

        Raises:
            TransportError: The source answered with a non-success status
            NetworkFailure: The transport raised before a response arrived
            ParseError: The body is not a JSON object of the expected shape
        """
        granularity = Granularity(granularity)
        url = self.build_url(instrument, granularity)

        with traced() as trace_id:
            context = {
                "instrument": instrument,
                "granularity": granularity.value,
                "url": url,
            }
            self.logger.info("Starting candle fetch", context=context)
            self._record(EventType.FETCH_START, "Candle fetch started", context, trace_id)
            started = time.perf_counter()

            try:
                payload = await self._get_json(url)
                observations = self.parse_candles(payload)
            except ChartDataError as e:
                duration_ms = (time.perf_counter() - started) * 1000
                self.logger.error(
                    f"Error fetching candles for {instrument}",
                    context={**context, "result": "failed", "duration_ms": duration_ms},
                    exception=e,
                )
                self._record(
                    EventType.FETCH_COMPLETE,
                    "Candle fetch failed",
                    {**context, "status": "failed", "error": str(e)},
                    trace_id,
                    duration_ms,
                )
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            self.logger.info(
                "Successfully fetched candles",
                context={
                    **context,
                    "result": "success",
                    "records": len(observations),
                    "duration_ms": duration_ms,
                },
            )
            self._record(
                EventType.FETCH_COMPLETE,
                "Candle fetch completed",
                {**context, "status": "success", "records": len(observations)},
                trace_id,
                duration_ms,
            )
            return observations

    async def _get_json(self, url: str) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise NetworkFailure(e) from e

        if not response.is_success:
            raise TransportError(response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Response body is not valid JSON: {e}") from e

    def parse_candles(self, payload: Any) -> list[RawObservation]:
        """
        Extract raw observations from a decoded response body.

        A body without a "candles" field is treated as an empty series.
        """
        if not isinstance(payload, dict):
            raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")

        candles = payload.get("candles")
        if candles is None:
            self.logger.warning(
                "Response has no candles field, using an empty series",
                context={"keys": sorted(payload.keys())},
            )
            return []

        if not isinstance(candles, list):
            raise ParseError(f"Expected 'candles' to be a list, got {type(candles).__name__}")

        observations = []
        for index, item in enumerate(candles):
            if not isinstance(item, dict) or "date" not in item or "close" not in item:
                raise ParseError(f"Candle {index} is missing 'date' or 'close'")
            observations.append(RawObservation(date=item["date"], close=item["close"]))
        return observations

    def _record(
        self,
        event_type: str,
        message: str,
        context: dict[str, Any],
        trace_id: str | None,
        duration_ms: float | None = None,
    ) -> None:
        if self.event_store:
            self.event_store.add_event(
                event_type=event_type,
                component="candle_source",
                message=message,
                context=context,
                duration_ms=duration_ms,
                trace_id=trace_id,
            )
