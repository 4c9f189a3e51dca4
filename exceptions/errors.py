"""
Custom exception classes for the application.

Every error carries a stable code, a message safe to show to users, an HTTP
status and a details dict.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "LOT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# LOT ERRORS
# ===================

class LotNotFoundError(NotFoundError):
    """Lot not found."""

    def __init__(self, lot_id: str):
        super().__init__(
            resource="Lot",
            identifier=str(lot_id),
            code="LOT_NOT_FOUND"
        )


class LotNotAvailableError(ConflictError):
    """Lot is already USED or DISCARDED."""

    def __init__(self, lot_id: str, status: str):
        super().__init__(
            code="LOT_NOT_AVAILABLE",
            message=f"Lot is {status} and can no longer be changed",
            details={"lot_id": str(lot_id), "status": status}
        )


class InvalidDiscardReasonError(ValidationError):
    """Discard requested without a reason."""

    def __init__(self):
        super().__init__(
            code="INVALID_DISCARD_REASON",
            message="A reason is required to discard a lot"
        )


class StockConflictError(ConflictError):
    """A lot changed between being read and being written."""

    def __init__(self, lot_id: str, expected_quantity: Optional[str] = None):
        super().__init__(
            code="STOCK_CONFLICT",
            message="Stock changed while the operation was running. Please try again.",
            details={"lot_id": str(lot_id), "expected_quantity": expected_quantity}
        )


# ===================
# BASKET ERRORS
# ===================

class InvalidBasketQuantityError(ValidationError):
    """Basket quantity is not a positive integer."""

    def __init__(self, quantity: Any):
        super().__init__(
            code="INVALID_BASKET_QUANTITY",
            message="Basket quantity must be a positive whole number",
            details={"provided": repr(quantity)}
        )


class BasketBatchNotFoundError(NotFoundError):
    """Basket batch not found."""

    def __init__(self, batch_id: str):
        super().__init__(
            resource="Basket batch",
            identifier=str(batch_id),
            code="BASKET_BATCH_NOT_FOUND"
        )


class InsufficientStockError(AppError):
    """Allocator was handed fewer units than required."""

    def __init__(self, food_id: str, remaining: str):
        super().__init__(
            code="INSUFFICIENT_STOCK",
            message="Not enough stock to complete allocation",
            status_code=500,
            details={"food_id": str(food_id), "remaining": remaining}
        )
