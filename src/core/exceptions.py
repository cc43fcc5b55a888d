"""
Domain exceptions for the sales order desk.

Provides specific exception types for different error scenarios.
"""

from typing import Any


class OrderDeskError(Exception):
    """Base exception for all order desk errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(OrderDeskError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )
        self.reason = message


class LineValidationError(ValidationError):
    """A line mutation was rejected; the order is left untouched."""

    pass


class NonPositiveQuantityError(LineValidationError):
    """Quantity must be strictly positive."""

    def __init__(self, quantity: float):
        super().__init__("quantity", "quantity must be positive", quantity)
        self.code = "NON_POSITIVE_QUANTITY"


class NegativeAmountError(LineValidationError):
    """Prices, discounts and charges cannot be negative."""

    def __init__(self, field: str, value: float):
        super().__init__(field, f"{field} cannot be negative", value)
        self.code = "NEGATIVE_AMOUNT"


class ForeignPackagingError(LineValidationError):
    """Packaging does not belong to the line's product."""

    def __init__(self, packaging_id: str, product_id: str):
        super().__init__(
            "packaging_id",
            f"packaging {packaging_id} does not belong to product {product_id}",
            packaging_id,
        )
        self.code = "FOREIGN_PACKAGING"
        self.details.update({"packaging_id": packaging_id, "product_id": product_id})


class InactivePackagingError(LineValidationError):
    """Packaging is registered but no longer offered for sale."""

    def __init__(self, packaging_id: str):
        super().__init__("packaging_id", f"packaging {packaging_id} is inactive", packaging_id)
        self.code = "INACTIVE_PACKAGING"


class UnknownLineError(LineValidationError):
    """Line is not part of the order."""

    def __init__(self, line_id: str):
        super().__init__("line_id", f"line {line_id} is not part of this order", line_id)
        self.code = "UNKNOWN_LINE"


class UnknownFieldError(LineValidationError):
    """Field cannot be edited through update_line_field."""

    def __init__(self, field: str, allowed: list[str]):
        super().__init__(
            "field",
            f"'{field}' is not editable. Allowed: {', '.join(allowed)}",
            field,
        )
        self.code = "UNKNOWN_FIELD"


class SaveInProgressError(LineValidationError):
    """Order is being saved; edits wait until the save finishes."""

    def __init__(self, state: str):
        super().__init__(
            "order", f"order is being saved ({state}); edit again when the save finishes", state
        )
        self.code = "SAVE_IN_PROGRESS"


class StaleLookupError(OrderDeskError):
    """An async lookup resolved after a newer one was issued."""

    def __init__(self, generation: int, current: int):
        super().__init__(
            f"Lookup generation {generation} superseded by {current}",
            code="STALE_LOOKUP",
            details={"generation": generation, "current": current},
        )


# Storage Exceptions
class StorageError(OrderDeskError):
    """Base exception for storage operations."""

    pass


class OrderNotFoundError(StorageError):
    """Sales order not found in storage."""

    def __init__(self, order_id: str):
        super().__init__(
            f"Order not found: {order_id}",
            code="ORDER_NOT_FOUND",
            details={"order_id": order_id},
        )


class ProductNotFoundError(StorageError):
    """Catalog product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class SessionNotFoundError(StorageError):
    """Editing session not found or expired."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session not found: {session_id}",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Remote call Exceptions
class RemoteCallError(OrderDeskError):
    """Base exception for calls that cross the async boundary."""

    pass


class FiscalRecalculationError(RemoteCallError):
    """Fiscal recalculation service rejected or failed the request."""

    def __init__(self, order_id: str, reason: str):
        super().__init__(
            f"Fiscal recalculation failed for order {order_id}: {reason}",
            code="FISCAL_RECALCULATION_FAILED",
            details={"order_id": order_id, "reason": reason},
        )


class FiscalTimeoutError(RemoteCallError):
    """Fiscal recalculation did not answer in time."""

    def __init__(self, order_id: str, timeout: float):
        super().__init__(
            f"Fiscal recalculation for order {order_id} timed out after {timeout} seconds",
            code="FISCAL_TIMEOUT",
            details={"order_id": order_id, "timeout": timeout},
        )


# Workflow Exceptions
class OrderStateError(OrderDeskError):
    """Base exception for save/confirm workflow errors."""

    pass


class InvalidStateTransitionError(OrderStateError):
    """Save workflow was asked to move between unrelated states."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move order from '{current}' to '{target}'",
            code="INVALID_STATE_TRANSITION",
            details={"current": current, "target": target},
        )


class OrderNotReadyError(OrderStateError):
    """Order cannot be saved or confirmed yet."""

    def __init__(self, reasons: list[str]):
        super().__init__(
            "; ".join(reasons),
            code="ORDER_NOT_READY",
            details={"reasons": reasons},
        )
        self.reasons = reasons


class ConfigurationError(OrderDeskError):
    """Configuration error."""

    pass
