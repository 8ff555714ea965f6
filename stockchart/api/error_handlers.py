"""Centralized error handling for the chart API."""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stockchart.models.chart_data import Granularity


class ChartError:
    """Standard error codes for the chart API."""

    # Request errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_GRANULARITY = "INVALID_GRANULARITY"

    # Generic errors
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorResponse:
    """Standardized error response format."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | list[str] | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        """
        Initialize error response.

        Args:
            error_code: Standard error code from the ChartError class
            message: Human-readable error message
            details: Additional error details
            status_code: HTTP status code
        """
        self.error_code = error_code
        self.message = message
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        response = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
        )


def create_validation_error_response(errors: list[dict[str, Any]]) -> ErrorResponse:
    """Build a validation error response from Pydantic validation errors."""
    field_errors = {}
    for error in errors:
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    return ErrorResponse(
        error_code=ChartError.VALIDATION_ERROR,
        message="Validation failed for one or more fields",
        details=field_errors,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def create_invalid_granularity_error(value: str) -> ErrorResponse:
    """Error for a timeframe that is not one of the supported granularities."""
    return ErrorResponse(
        error_code=ChartError.INVALID_GRANULARITY,
        message=f"Unknown granularity: {value}",
        details={"allowed": [g.value for g in Granularity]},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def create_unavailable_error() -> ErrorResponse:
    """Error returned while the timeframe controller is not running."""
    return ErrorResponse(
        error_code=ChartError.SERVICE_UNAVAILABLE,
        message="Chart controller is not running",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors with the standard body."""
    error_response = create_validation_error_response(exc.errors())
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )
