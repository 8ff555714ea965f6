"""FastAPI dependencies resolving the session-scoped chart objects."""

from fastapi import Request

from stockchart.api.error_handlers import create_unavailable_error
from stockchart.services.timeframe_controller import TimeframeController
from stockchart.utils.event_store import EventStore
from stockchart.utils.metrics import MetricsCalculator


def get_controller(request: Request) -> TimeframeController:
    """
    Return the running timeframe controller.

    Raises:
        HTTPException: 503 if the application lifespan has not started it
    """
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise create_unavailable_error().to_http_exception()
    return controller


def get_event_store(request: Request) -> EventStore:
    event_store = getattr(request.app.state, "event_store", None)
    if event_store is None:
        raise create_unavailable_error().to_http_exception()
    return event_store


def get_metrics_calculator(request: Request) -> MetricsCalculator:
    calculator = getattr(request.app.state, "metrics", None)
    if calculator is None:
        raise create_unavailable_error().to_http_exception()
    return calculator
