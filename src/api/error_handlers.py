"""Centralized error handling for the stock API."""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.services.errors import (
    DuplicateSymbolError,
    ProviderError,
    StockError,
    StockNotFoundError,
    StockValidationError,
)
from src.utils.logger import StructuredLogger

logger = StructuredLogger("ErrorHandlers")


class StockErrorCode:
    """Standard error codes returned to API clients."""

    DUPLICATE_SYMBOL = DuplicateSymbolError.kind
    NOT_FOUND = StockNotFoundError.kind
    PROVIDER_ERROR = ProviderError.kind
    VALIDATION_ERROR = StockValidationError.kind
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_BY_CODE = {
    StockErrorCode.DUPLICATE_SYMBOL: status.HTTP_409_CONFLICT,
    StockErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    StockErrorCode.PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
    StockErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
}


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
            error_code: Standard error code from StockErrorCode
            message: Human-readable error message
            details: Additional error details (field-specific errors, etc.)
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

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def create_stock_error_response(error: StockError) -> ErrorResponse:
    """
    Map a domain error to its response.

    Args:
        error: Exception from the service layer

    Returns:
        ErrorResponse carrying the error's stable kind and message
    """
    details = None
    if isinstance(error, StockValidationError):
        details = {error.field: error.message}
    elif isinstance(error, ProviderError):
        details = {"symbol": error.symbol, "provider": error.provider}

    return ErrorResponse(
        error_code=error.kind,
        message=error.message,
        details=details,
        status_code=STATUS_BY_CODE.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def create_validation_error_response(errors: list[dict[str, Any]]) -> ErrorResponse:
    """
    Create standardized validation error response from Pydantic validation errors.

    Args:
        errors: List of validation errors from Pydantic

    Returns:
        ErrorResponse with field-specific validation errors
    """
    field_errors = {}
    for error in errors:
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    return ErrorResponse(
        error_code=StockErrorCode.VALIDATION_ERROR,
        message="Validation failed for one or more fields",
        details=field_errors,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def stock_error_handler(request: Request, exc: StockError) -> JSONResponse:
    """Handle domain errors raised by the sync service."""
    response = create_stock_error_response(exc)
    logger.warning(
        "Request failed",
        context={"path": request.url.path, "error": response.error_code, "detail": exc.message},
    )
    return response.to_json_response()


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors with standardized format."""
    return create_validation_error_response(exc.errors()).to_json_response()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a generic 500 without leaking internals."""
    logger.error("Unhandled error", context={"path": request.url.path}, exception=exc)
    return ErrorResponse(
        error_code=StockErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    ).to_json_response()
