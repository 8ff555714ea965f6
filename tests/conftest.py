"""Pytest configuration and fixtures."""

import time
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import httpx
import pytest

from stockchart.services.candle_source import CandleSourceAdapter
from stockchart.utils.event_store import EventStore
from stockchart.utils.trace_context import clear_trace

BASE_URL = "https://chart.test/candle/v3"


def daily_candles(count: int, start_day: int = 1) -> list[dict]:
    """Ascending daily candles in January/February 2024 with increasing closes."""
    first = datetime(2024, 1, start_day, tzinfo=UTC)
    return [
        {
            "date": (first + timedelta(days=i)).isoformat().replace("+00:00", "Z"),
            "close": 100.0 + i,
        }
        for i in range(count)
    ]


class CandleService:
    """
    Stand-in for the upstream chart service.

    Responses are keyed by granularity; a value is either a JSON body, an
    ``(status_code, body)`` tuple, or an exception to raise from the transport.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        granularity = request.url.path.rstrip("/").split("/")[-2]
        response = self.responses.get(granularity, {"candles": []})
        if isinstance(response, Exception):
            raise response
        if isinstance(response, tuple):
            status_code, body = response
        else:
            status_code, body = 200, response
        if isinstance(body, (bytes, str)):
            return httpx.Response(status_code, content=body)
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def reset_trace():
    """Make sure no trace id leaks between tests."""
    clear_trace()
    yield
    clear_trace()


@pytest.fixture
def event_store():
    return EventStore()


@pytest.fixture
def candle_service():
    return CandleService()


@pytest.fixture
def adapter(candle_service, event_store):
    """Adapter wired to the in-memory candle service."""
    return CandleSourceAdapter(
        base_url=BASE_URL,
        exchange="NASDAQ",
        timeout=5,
        event_store=event_store,
        transport=candle_service.transport,
    )


@pytest.fixture
def test_client(candle_service):
    """Test client running the app lifespan against the in-memory candle service."""
    from fastapi.testclient import TestClient

    from main import app

    def build_adapter(event_store=None):
        return CandleSourceAdapter(
            base_url=BASE_URL,
            event_store=event_store,
            transport=candle_service.transport,
        )

    with patch("main.CandleSourceAdapter", side_effect=build_adapter):
        with TestClient(app) as client:
            yield client


def wait_for_chart(client, statuses=("success", "error"), timeout: float = 5.0) -> dict:
    """Poll GET /api/chart until the snapshot reaches one of ``statuses``."""
    deadline = time.monotonic() + timeout
    while True:
        snapshot = client.get("/api/chart").json()
        if snapshot["status"] in statuses or time.monotonic() > deadline:
            return snapshot
        time.sleep(0.01)
