"""Error taxonomy for candle retrieval and normalization."""

from typing import Any


class ChartDataError(Exception):
    """Base class for every fetch-time failure."""


class TransportError(ChartDataError):
    """The candle source answered with a non-success status."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP error! status: {status_code}")


class NetworkFailure(ChartDataError):
    """The request never produced a response (DNS, timeout, reset)."""

    def __init__(self, cause: Exception):
        self.cause = cause
        reason = str(cause) or type(cause).__name__
        super().__init__(f"Network failure: {reason}")


class ParseError(ChartDataError):
    """The response body or a record in it has an unexpected shape."""


class NumericCoercionError(ChartDataError):
    """A close price could not be read as a finite number."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid close price: {value!r}")
