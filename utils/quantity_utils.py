"""
Quantity conversion helpers.

The engine works in Decimal so sums stay exact; the store and JSON clients
get plain numbers.
"""

from decimal import Decimal
from typing import Union


def quantity_to_db(value: Decimal) -> Union[int, float]:
    """Convert a Decimal to a JSON-friendly number (int when integral)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)
