"""
Basket service: assembles baskets from available stock.

Flow for one assembly:
1. VALIDATE  basket quantity is a positive integer
2. LOAD      basket foods and AVAILABLE lots
3. CHECK     requirement vs availability; any shortfall returns without writes
4. PLAN      FIFO-by-expiry allocation (services/basket_allocation.py)
5. APPLY     one conditional update per lot, journaled
6. RECORD    basket_batches header + basket_items rows

The store has no multi-row transactions, so a failure in 5 or 6 reverts the
journaled lot updates before the error propagates. A lot that changed under
us (StockConflictError) restarts the whole run up to
settings.basket_conflict_retries times.
"""

from typing import List, Optional
import structlog

from config import get_supabase_client, settings
from models.basket import (
    AllocationPlan,
    BasketAssemblyResult,
    BasketBatchResponse,
    BasketItemResponse,
    BasketPreviewResponse,
    LotAllocation,
)
from models.lot import LotStatus
from services.basket_allocation import (
    calculate_requirements,
    check_availability,
    group_lots_by_food,
    plan_allocation,
    summarize_requirements,
)
from services.food_service import FoodService, get_food_service
from services.lot_service import LotService, get_lot_service
from utils.quantity_utils import quantity_to_db
from exceptions import (
    AppError,
    BasketBatchNotFoundError,
    DatabaseError,
    InvalidBasketQuantityError,
    StockConflictError,
)

logger = structlog.get_logger(__name__)


def validate_basket_quantity(quantity) -> int:
    """
    Reject anything but a positive integer.

    Raises:
        InvalidBasketQuantityError: For bools, non-integers and values <= 0
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidBasketQuantityError(quantity)
    return quantity


class BasketService:
    """
    Basket assembly and batch history.

    Only this service writes lot quantities as part of assembly, and only
    inside assemble_baskets.
    """

    def __init__(
        self,
        food_service: Optional[FoodService] = None,
        lot_service: Optional[LotService] = None,
    ):
        self.db = get_supabase_client()
        self.batches_table = "basket_batches"
        self.items_table = "basket_items"
        self.food_service = food_service or get_food_service()
        self.lot_service = lot_service or get_lot_service()

    # ===================
    # CHECK PHASE (read-only)
    # ===================

    def _load_stock(self):
        foods = self.food_service.list_basket_foods()
        lots = self.lot_service.list_available_lots()
        return foods, group_lots_by_food(lots)

    def preview_baskets(self, quantity: int) -> BasketPreviewResponse:
        """
        Show what `quantity` baskets would need without touching stock.

        Safe to call any number of times.

        Raises:
            InvalidBasketQuantityError: If quantity is not a positive integer
        """
        validate_basket_quantity(quantity)

        foods, lots_by_food = self._load_stock()
        requirements = calculate_requirements(quantity, foods)
        rows = summarize_requirements(requirements, foods, lots_by_food)
        missing = check_availability(requirements, foods, lots_by_food)

        logger.info(
            "basket_preview_computed",
            quantity=quantity,
            foods=len(rows),
            missing=len(missing)
        )

        return BasketPreviewResponse(
            quantity=quantity,
            can_assemble=not missing,
            foods=rows,
            missing=missing,
        )

    # ===================
    # ASSEMBLY
    # ===================

    def assemble_baskets(
        self,
        quantity: int,
        created_by: Optional[str] = None,
    ) -> BasketAssemblyResult:
        """
        Assemble `quantity` baskets, all or nothing.

        Args:
            quantity: Number of baskets (positive integer)
            created_by: Audit identity of the requester

        Returns:
            success=True with batch_id, or success=False with the missing
            foods (no stock was changed)

        Raises:
            InvalidBasketQuantityError: Before any read
            StockConflictError: If stock kept changing after all retries
            DatabaseError: On store failure (applied lot changes are reverted)
        """
        validate_basket_quantity(quantity)

        attempts = settings.basket_conflict_retries + 1

        logger.info(
            "assembling_baskets",
            quantity=quantity,
            created_by=created_by
        )

        for attempt in range(1, attempts + 1):
            try:
                return self._assemble_once(quantity, created_by)
            except StockConflictError as e:
                logger.warning(
                    "stock_conflict",
                    attempt=attempt,
                    max_attempts=attempts,
                    lot_id=e.details.get("lot_id")
                )
                if attempt >= attempts:
                    raise

    def _assemble_once(
        self,
        quantity: int,
        created_by: Optional[str],
    ) -> BasketAssemblyResult:
        foods, lots_by_food = self._load_stock()
        requirements = calculate_requirements(quantity, foods)
        missing = check_availability(requirements, foods, lots_by_food)

        if missing:
            logger.info(
                "basket_shortfall",
                quantity=quantity,
                missing=[
                    {"food_id": m.food_id, "missing": str(m.missing_quantity)}
                    for m in missing
                ]
            )
            return BasketAssemblyResult(success=False, missing=missing)

        plan = plan_allocation(requirements, lots_by_food)

        applied: List[LotAllocation] = []
        try:
            for allocation in plan.lot_allocations:
                self.lot_service.update_if_unchanged(
                    allocation.lot_id,
                    expected_quantity=allocation.previous_quantity,
                    quantity=allocation.new_quantity,
                    status=allocation.new_status,
                )
                applied.append(allocation)

            logger.debug("lot_allocations_applied", count=len(applied))

            batch_id = self.record_batch(quantity, created_by, plan)

        except Exception as e:
            logger.error(
                "basket_assembly_failed",
                quantity=quantity,
                applied=len(applied),
                error=str(e),
                error_type=type(e).__name__
            )
            self._revert(applied)
            raise

        logger.info(
            "baskets_assembled",
            quantity=quantity,
            batch_id=batch_id,
            lots_changed=len(applied)
        )

        return BasketAssemblyResult(success=True, batch_id=batch_id)

    def _revert(self, applied: List[LotAllocation]) -> None:
        """Undo applied lot changes, newest first."""
        for allocation in reversed(applied):
            try:
                self.lot_service.update_if_unchanged(
                    allocation.lot_id,
                    expected_quantity=allocation.new_quantity,
                    quantity=allocation.previous_quantity,
                    status=LotStatus.AVAILABLE,
                    expected_status=allocation.new_status,
                )
            except AppError as e:
                logger.error(
                    "lot_compensation_failed",
                    lot_id=allocation.lot_id,
                    restore_quantity=str(allocation.previous_quantity),
                    error=e.message
                )

        if applied:
            logger.info("lot_allocations_reverted", count=len(applied))

    # ===================
    # BATCH RECORDING
    # ===================

    def record_batch(
        self,
        quantity: int,
        created_by: Optional[str],
        plan: AllocationPlan,
    ) -> int:
        """
        Insert the batch header and one item per consumed food.

        Returns:
            New batch id

        Raises:
            DatabaseError: If either insert fails (header is removed if the
                items insert fails)
        """
        try:
            result = (
                self.db.table(self.batches_table)
                .insert({
                    "basket_quantity": quantity,
                    "created_by": created_by,
                })
                .execute()
            )
            batch_id = result.data[0]["id"]

        except Exception as e:
            logger.error("create_basket_batch_failed", quantity=quantity, error=str(e))
            raise DatabaseError("insert", str(e))

        items = [
            {
                "basket_batch_id": batch_id,
                "food_id": food.food_id,
                "total_quantity": quantity_to_db(food.total_consumed),
            }
            for food in plan.foods
            if food.total_consumed > 0
        ]

        if items:
            try:
                self.db.table(self.items_table).insert(items).execute()
            except Exception as e:
                logger.error(
                    "create_basket_items_failed",
                    batch_id=batch_id,
                    count=len(items),
                    error=str(e)
                )
                self._delete_batch(batch_id)
                raise DatabaseError("insert", str(e), {"batch_id": batch_id})

        logger.info("basket_batch_recorded", batch_id=batch_id, items=len(items))

        return batch_id

    def _delete_batch(self, batch_id: int) -> None:
        try:
            self.db.table(self.batches_table).delete().eq("id", batch_id).execute()
        except Exception as e:
            logger.error("delete_basket_batch_failed", batch_id=batch_id, error=str(e))

    # ===================
    # HISTORY
    # ===================

    def get_batch(self, batch_id: int) -> BasketBatchResponse:
        """
        Get a batch with its items.

        Raises:
            BasketBatchNotFoundError: If batch doesn't exist
        """
        try:
            result = (
                self.db.table(self.batches_table)
                .select("*")
                .eq("id", batch_id)
                .single()
                .execute()
            )

            if not result.data:
                raise BasketBatchNotFoundError(str(batch_id))

            items = (
                self.db.table(self.items_table)
                .select("*")
                .eq("basket_batch_id", batch_id)
                .order("food_id")
                .execute()
            )

            return BasketBatchResponse(
                **result.data,
                items=[BasketItemResponse(**row) for row in items.data]
            )

        except BasketBatchNotFoundError:
            raise
        except Exception as e:
            logger.error("get_basket_batch_failed", batch_id=batch_id, error=str(e))
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise BasketBatchNotFoundError(str(batch_id))
            raise DatabaseError("select", str(e))

    def list_batches(self, limit: int = 20) -> list[BasketBatchResponse]:
        """Most recent batches first, without items."""
        try:
            result = (
                self.db.table(self.batches_table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [BasketBatchResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("list_basket_batches_failed", error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_basket_service: Optional[BasketService] = None


def get_basket_service() -> BasketService:
    """Get or create BasketService instance."""
    global _basket_service
    if _basket_service is None:
        _basket_service = BasketService()
    return _basket_service
