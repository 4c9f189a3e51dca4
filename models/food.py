"""
Food catalog schemas.

Rows of the foods table. The catalog is managed elsewhere and is read-only
here; only the basket membership fields matter to assembly.
"""

from typing import Optional
from pydantic import Field

from models.base import BaseSchema, Quantity


class FoodResponse(BaseSchema):
    """A food definition from the catalog."""

    id: int
    name: str
    in_basket: bool = Field(
        default=True,
        description="Part of the standard basket"
    )
    qty_per_basket: Optional[Quantity] = Field(
        None,
        description="Units per basket; null or <= 0 means 1"
    )
    category: Optional[str] = None
    unit: Optional[str] = None
    perishable: Optional[bool] = None
