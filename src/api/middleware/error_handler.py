"""
Error handling middleware.

Standardizes all API error responses to include:
- error_code: machine-readable identifier
- message: human-readable description
- hint: suggested recovery action
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.application.dto.responses import ErrorResponse
from src.config import get_logger
from src.core.exceptions import (
    ConfigurationError,
    FiscalTimeoutError,
    InvalidStateTransitionError,
    OrderDeskError,
    OrderNotFoundError,
    OrderNotReadyError,
    OrderStateError,
    ProductNotFoundError,
    RemoteCallError,
    SessionNotFoundError,
    StorageError,
    ValidationError,
)

logger = get_logger(__name__)


# Map exceptions to HTTP status codes; first match wins, so subclasses come first
EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    ProductNotFoundError: status.HTTP_404_NOT_FOUND,
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OrderNotReadyError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidStateTransitionError: status.HTTP_409_CONFLICT,
    OrderStateError: status.HTTP_409_CONFLICT,
    FiscalTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
    RemoteCallError: status.HTTP_502_BAD_GATEWAY,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ValueError: status.HTTP_400_BAD_REQUEST,
    KeyError: status.HTTP_404_NOT_FOUND,
}

# Hint messages per error code / exception type
HINT_MAP: dict[str, str] = {
    "ORDER_NOT_FOUND": "Check the order ID.",
    "PRODUCT_NOT_FOUND": "Check the product ID or search the catalog again.",
    "SESSION_NOT_FOUND": "The editing session expired. Open the order again with POST /api/orders/sessions.",
    "NON_POSITIVE_QUANTITY": "Enter a quantity greater than zero.",
    "NEGATIVE_AMOUNT": "Prices, discounts and charges cannot be negative.",
    "FOREIGN_PACKAGING": "Pick one of the packagings listed for this product.",
    "INACTIVE_PACKAGING": "This packaging is no longer sold. Pick an active one or the base unit.",
    "UNKNOWN_LINE": "The line was removed or never existed. Refresh the order.",
    "UNKNOWN_FIELD": "Only quantity, unit_price and discount_amount can be edited.",
    "ORDER_NOT_READY": "Fix the listed problems and save again.",
    "INVALID_STATE_TRANSITION": "A save is already running for this order. Wait for it to finish.",
    "SAVE_IN_PROGRESS": "The order is being saved. Repeat the edit when the save finishes.",
    "FISCAL_TIMEOUT": "The order was saved; save again to retry the tax recalculation.",
    "FISCAL_RECALCULATION_FAILED": "The order was saved; check the fiscal service and save again.",
    "LOOKUP_SUPERSEDED": "A newer product selection replaced this one.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "DATABASE_ERROR": "A database operation failed. Check server logs.",
    "ValueError": "A parameter value is invalid. Check the request.",
    "KeyError": "The requested key was not found.",
}

# Default hints by HTTP status code
STATUS_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found. Verify the ID.",
    409: "The request conflicts with the current order state. Refresh and retry.",
    422: "The request could not be processed. Check the input values.",
    500: "An internal error occurred. Check server logs.",
    502: "An upstream service failed. Retry later.",
    504: "An upstream service timed out. Retry later.",
}


def _get_hint(error_code: str, status_code: int) -> str:
    """Hint for the error code, else the generic one for the status."""
    return HINT_MAP.get(error_code) or STATUS_HINTS.get(status_code, "")


def status_for(exc: Exception) -> int:
    return next(
        (code for exc_type, code in EXCEPTION_STATUS_MAP.items() if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
    hint: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=hint or _get_hint(error_code, status_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_json(request: Request, exc: Exception) -> JSONResponse:
    """Log an exception and render it as an ErrorResponse."""
    status_code = status_for(exc)
    if isinstance(exc, OrderDeskError):
        error_code, message = exc.code, exc.message
        detail = ", ".join(f"{k}={v}" for k, v in exc.details.items()) or None
    else:
        error_code, message, detail = type(exc).__name__, str(exc), None

    if status_code >= 500:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=error_code,
            error=message,
            traceback=traceback.format_exc(),
        )
    else:
        logger.warning("request_error", path=request.url.path, error_type=error_code, error=message)

    return _error_response(request, status_code, error_code, message, detail)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort conversion of exceptions the handlers did not catch."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return error_json(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain, validation and HTTP exceptions."""
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException

    @app.exception_handler(OrderDeskError)
    async def domain_exception_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
        return error_json(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            detail=problems,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        # Routes raise dict details carrying their own error_code
        if isinstance(exc.detail, dict):
            message = str(exc.detail.get("message") or "An error occurred")
            error_code = exc.detail.get("error_code") or _infer_error_code(exc.status_code, message)
        else:
            message = str(exc.detail)
            error_code = _infer_error_code(exc.status_code, message)
        return _error_response(request, exc.status_code, error_code, message)


_NOT_FOUND_CODES = (
    ("session", "SESSION_NOT_FOUND"),
    ("order", "ORDER_NOT_FOUND"),
    ("product", "PRODUCT_NOT_FOUND"),
)


def _infer_error_code(status_code: int, detail: str) -> str:
    """Machine-readable code for an HTTPException raised with a plain string."""
    if status_code == 404:
        lowered = detail.lower()
        return next((code for word, code in _NOT_FOUND_CODES if word in lowered), "NOT_FOUND")
    return {400: "BAD_REQUEST", 422: "UNPROCESSABLE_ENTITY"}.get(status_code, "HTTP_ERROR")
