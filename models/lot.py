"""
Stock lot schemas.

A lot is one received quantity of a single food with its own expiry date.
Lots start AVAILABLE and end either USED (consumed to zero by basket
assembly) or DISCARDED (removed with a reason, quantity kept for the record).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import Field

from models.base import BaseSchema, Quantity


class LotStatus(str, Enum):
    """Lot lifecycle status."""
    AVAILABLE = "AVAILABLE"
    USED = "USED"
    DISCARDED = "DISCARDED"


class ExpiryStatus(str, Enum):
    """Expiry risk of a lot or of a food's nearest lot."""
    OK = "ok"
    WARNING = "warning"
    DANGER = "danger"


class ExpiryWindow(str, Enum):
    """Filters for the expiring-lots listing."""
    ALL = "all"
    EXPIRED = "expired"
    WARNING = "warning"
    HORIZON = "horizon"


class LotResponse(BaseSchema):
    """A row of the lots table."""

    id: int
    food_id: int
    quantity: Quantity = Field(..., ge=0, description="Remaining units")
    expiry_date: Optional[date] = None
    status: LotStatus = LotStatus.AVAILABLE
    received_at: Optional[datetime] = None
    donor_name: Optional[str] = None
    discard_reason: Optional[str] = None
    discarded_at: Optional[datetime] = None


class LotDiscardRequest(BaseSchema):
    """Body for discarding a lot."""

    reason: str = Field(
        ...,
        max_length=255,
        description="Why the lot is being discarded"
    )


class ExpiringLot(BaseSchema):
    """An AVAILABLE lot with its distance to expiry."""

    id: int
    food_id: int
    food_name: Optional[str] = None
    quantity: Quantity
    expiry_date: date
    days_to_expiry: int = Field(..., description="Negative once expired")
    expiry_status: ExpiryStatus


class FoodStockSummary(BaseSchema):
    """Available stock of one food."""

    food_id: int
    name: str
    total_quantity: Quantity = Decimal("0")
    lot_count: int = 0
    nearest_expiry: Optional[date] = None
    status: ExpiryStatus = ExpiryStatus.OK
