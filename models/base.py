"""
Base schema for all models.
"""

from decimal import Decimal
from typing import Annotated, Union
from pydantic import BaseModel, ConfigDict, PlainSerializer

from utils.quantity_utils import quantity_to_db


# Decimal in the engine, plain JSON number on the wire
Quantity = Annotated[
    Decimal,
    PlainSerializer(quantity_to_db, return_type=Union[int, float], when_used="json"),
]


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )
