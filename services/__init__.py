"""
Business logic services.

Each service handles one domain area.
"""

from services.food_service import FoodService, get_food_service
from services.lot_service import LotService, get_lot_service
from services.basket_service import BasketService, get_basket_service

__all__ = [
    "FoodService",
    "get_food_service",
    "LotService",
    "get_lot_service",
    "BasketService",
    "get_basket_service",
]
