"""
Basket assembly schemas.

Covers the request/response of an assembly run, the allocation plan built
before any lot is touched, and the recorded batch with its items.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from pydantic import Field

from models.base import BaseSchema, Quantity
from models.lot import LotStatus


# ===================
# REQUEST / RESULT
# ===================

class BasketAssemblyRequest(BaseSchema):
    """
    Body for assembling baskets.

    quantity is taken as sent so that true, "1" or 1.0 reach
    validate_basket_quantity unchanged and are rejected there.
    """

    quantity: Any = Field(
        ...,
        description="Number of baskets to assemble (positive integer)",
        json_schema_extra={"type": "integer", "minimum": 1},
    )


class MissingFood(BaseSchema):
    """A food that blocks assembly and by how much."""

    food_id: int
    name: str
    missing_quantity: Quantity = Field(..., gt=0)


class BasketAssemblyResult(BaseSchema):
    """Outcome of an assembly request."""

    success: bool
    batch_id: Optional[int] = None
    missing: List[MissingFood] = Field(default_factory=list)


class FoodRequirement(BaseSchema):
    """Requirement vs availability of one basket food."""

    food_id: int
    name: str
    per_basket: Quantity
    required: Quantity
    available: Quantity
    missing: Quantity = Decimal("0")


class BasketPreviewResponse(BaseSchema):
    """Read-only check of what a basket quantity needs."""

    quantity: int
    can_assemble: bool
    foods: List[FoodRequirement] = Field(default_factory=list)
    missing: List[MissingFood] = Field(default_factory=list)


# ===================
# ALLOCATION PLAN
# ===================

class LotAllocation(BaseSchema):
    """Planned change to a single lot."""

    lot_id: int
    food_id: int
    previous_quantity: Quantity
    new_quantity: Quantity = Field(..., ge=0)
    consumed: Quantity = Field(..., gt=0)
    new_status: LotStatus


class FoodAllocation(BaseSchema):
    """All lot changes for one food."""

    food_id: int
    required: Quantity
    total_consumed: Quantity = Decimal("0")
    lots: List[LotAllocation] = Field(default_factory=list)


class AllocationPlan(BaseSchema):
    """Full plan for one assembly run."""

    foods: List[FoodAllocation] = Field(default_factory=list)

    @property
    def lot_allocations(self) -> List[LotAllocation]:
        """Every planned lot change, in application order."""
        return [lot for food in self.foods for lot in food.lots]


# ===================
# RECORDED BATCHES
# ===================

class BasketItemResponse(BaseSchema):
    """A row of basket_items."""

    id: Optional[int] = None
    basket_batch_id: int
    food_id: int
    total_quantity: Quantity = Field(..., ge=0)


class BasketBatchResponse(BaseSchema):
    """A row of basket_batches with its items."""

    id: int
    basket_quantity: int = Field(..., gt=0)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[BasketItemResponse] = Field(default_factory=list)
