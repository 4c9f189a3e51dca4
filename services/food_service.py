"""
Food catalog service.

Read-only access to the foods table.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.food import FoodResponse
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class FoodService:
    """
    Food catalog reads.

    The catalog is maintained elsewhere; basket assembly only needs to know
    which foods are in the basket and how many units each takes.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "foods"

    def list_basket_foods(self) -> list[FoodResponse]:
        """
        Get every food that is part of the standard basket.

        Returns:
            Foods with in_basket = true, ordered by id
        """
        logger.debug("getting_basket_foods")

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, in_basket, qty_per_basket")
                .eq("in_basket", True)
                .order("id")
                .execute()
            )

            foods = [FoodResponse(**row) for row in result.data]

            logger.debug("basket_foods_retrieved", count=len(foods))

            return foods

        except Exception as e:
            logger.error("get_basket_foods_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_all(self) -> list[FoodResponse]:
        """Get the full catalog ordered by name."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("name")
                .execute()
            )
            return [FoodResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("get_foods_failed", error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_food_service: Optional[FoodService] = None


def get_food_service() -> FoodService:
    """Get or create FoodService instance."""
    global _food_service
    if _food_service is None:
        _food_service = FoodService()
    return _food_service
