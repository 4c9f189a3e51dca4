"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Lots
    LotNotFoundError,
    LotNotAvailableError,
    InvalidDiscardReasonError,
    StockConflictError,

    # Baskets
    InvalidBasketQuantityError,
    BasketBatchNotFoundError,
    InsufficientStockError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Lots
    "LotNotFoundError",
    "LotNotAvailableError",
    "InvalidDiscardReasonError",
    "StockConflictError",

    # Baskets
    "InvalidBasketQuantityError",
    "BasketBatchNotFoundError",
    "InsufficientStockError",
]
