"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.food import FoodResponse
from models.lot import (
    LotStatus,
    ExpiryStatus,
    ExpiryWindow,
    LotResponse,
    LotDiscardRequest,
    ExpiringLot,
    FoodStockSummary,
)
from models.basket import (
    BasketAssemblyRequest,
    BasketAssemblyResult,
    MissingFood,
    FoodRequirement,
    BasketPreviewResponse,
    LotAllocation,
    FoodAllocation,
    AllocationPlan,
    BasketItemResponse,
    BasketBatchResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Food
    "FoodResponse",

    # Lot
    "LotStatus",
    "ExpiryStatus",
    "ExpiryWindow",
    "LotResponse",
    "LotDiscardRequest",
    "ExpiringLot",
    "FoodStockSummary",

    # Basket
    "BasketAssemblyRequest",
    "BasketAssemblyResult",
    "MissingFood",
    "FoodRequirement",
    "BasketPreviewResponse",
    "LotAllocation",
    "FoodAllocation",
    "AllocationPlan",
    "BasketItemResponse",
    "BasketBatchResponse",
]
