"""
Lot service for stock reads and guarded lot writes.

Every write to a lot is conditional: it only applies if the lot still has
the status and quantity the caller read. A write that matches no row means
someone else changed the lot first and raises StockConflictError.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.lot import (
    ExpiringLot,
    ExpiryStatus,
    ExpiryWindow,
    FoodStockSummary,
    LotResponse,
    LotStatus,
)
from services.food_service import FoodService, get_food_service
from utils.quantity_utils import quantity_to_db
from exceptions import (
    DatabaseError,
    InvalidDiscardReasonError,
    LotNotAvailableError,
    LotNotFoundError,
    StockConflictError,
)

logger = structlog.get_logger(__name__)


def classify_expiry(
    expiry_date: Optional[date],
    today: date,
    warning_days: int,
) -> ExpiryStatus:
    """
    Expiry risk for a date.

    DANGER once past, WARNING within `warning_days`, otherwise OK.
    No expiry date is always OK.
    """
    if expiry_date is None:
        return ExpiryStatus.OK
    days = (expiry_date - today).days
    if days < 0:
        return ExpiryStatus.DANGER
    if days <= warning_days:
        return ExpiryStatus.WARNING
    return ExpiryStatus.OK


class LotService:
    """
    Lot store operations.

    Reads snapshots of AVAILABLE stock and applies compare-and-swap updates
    for allocation and discard.
    """

    def __init__(self, food_service: Optional[FoodService] = None):
        self.db = get_supabase_client()
        self.table = "lots"
        self._food_service = food_service

    @property
    def food_service(self) -> FoodService:
        if self._food_service is None:
            self._food_service = get_food_service()
        return self._food_service

    # ===================
    # READ OPERATIONS
    # ===================

    def list_available_lots(self, food_id: Optional[int] = None) -> list[LotResponse]:
        """
        Get AVAILABLE lots, soonest expiry first.

        Args:
            food_id: Only lots of this food

        Returns:
            List of lots ordered by expiry_date ascending (nulls last)
        """
        logger.debug("getting_available_lots", food_id=food_id)

        try:
            query = (
                self.db.table(self.table)
                .select("*")
                .eq("status", LotStatus.AVAILABLE.value)
            )

            if food_id is not None:
                query = query.eq("food_id", food_id)

            result = query.order("expiry_date").execute()

            lots = [LotResponse(**row) for row in result.data]

            logger.debug("available_lots_retrieved", count=len(lots))

            return lots

        except Exception as e:
            logger.error(
                "get_available_lots_failed",
                food_id=food_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_by_id(self, lot_id: int) -> LotResponse:
        """
        Get a single lot by ID.

        Raises:
            LotNotFoundError: If lot doesn't exist
        """
        logger.debug("getting_lot", lot_id=lot_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", lot_id)
                .single()
                .execute()
            )

            if not result.data:
                raise LotNotFoundError(str(lot_id))

            return LotResponse(**result.data)

        except LotNotFoundError:
            raise
        except Exception as e:
            logger.error("get_lot_failed", lot_id=lot_id, error=str(e))
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise LotNotFoundError(str(lot_id))
            raise DatabaseError("select", str(e))

    def get_expiring_lots(
        self,
        window: ExpiryWindow = ExpiryWindow.ALL,
        today: Optional[date] = None,
    ) -> list[ExpiringLot]:
        """
        AVAILABLE lots that have an expiry date, with their risk.

        Args:
            window: EXPIRED (past), WARNING (0..expiry_warning_days),
                HORIZON (0..expiry_horizon_days) or ALL
            today: Reference date (defaults to today)

        Returns:
            Lots ordered by expiry ascending
        """
        today = today or date.today()
        warning_days = settings.expiry_warning_days
        horizon_days = settings.expiry_horizon_days

        logger.info("getting_expiring_lots", window=window.value)

        try:
            result = (
                self.db.table(self.table)
                .select("*, foods(name)")
                .eq("status", LotStatus.AVAILABLE.value)
                .order("expiry_date")
                .execute()
            )
        except Exception as e:
            logger.error("get_expiring_lots_failed", error=str(e))
            raise DatabaseError("select", str(e))

        lots = []
        for row in result.data:
            if not row.get("expiry_date"):
                continue
            food = row.pop("foods", None) or {}
            lot = LotResponse(**row)
            days = (lot.expiry_date - today).days

            if window == ExpiryWindow.EXPIRED and days >= 0:
                continue
            if window == ExpiryWindow.WARNING and not 0 <= days <= warning_days:
                continue
            if window == ExpiryWindow.HORIZON and not 0 <= days <= horizon_days:
                continue

            lots.append(ExpiringLot(
                id=lot.id,
                food_id=lot.food_id,
                food_name=food.get("name"),
                quantity=lot.quantity,
                expiry_date=lot.expiry_date,
                days_to_expiry=days,
                expiry_status=classify_expiry(lot.expiry_date, today, warning_days),
            ))

        lots.sort(key=lambda l: (l.expiry_date, l.id))

        logger.info("expiring_lots_retrieved", window=window.value, count=len(lots))

        return lots

    def get_stock_summary(self, today: Optional[date] = None) -> list[FoodStockSummary]:
        """
        Available stock per food with its nearest expiry.

        Every catalog food is listed, including those with no stock.
        """
        today = today or date.today()
        foods = self.food_service.get_all()
        lots = self.list_available_lots()

        summaries = {
            food.id: FoodStockSummary(food_id=food.id, name=food.name)
            for food in foods
        }

        for lot in lots:
            summary = summaries.get(lot.food_id)
            if summary is None:
                continue
            summary.total_quantity += lot.quantity
            summary.lot_count += 1
            if lot.expiry_date and (
                summary.nearest_expiry is None or lot.expiry_date < summary.nearest_expiry
            ):
                summary.nearest_expiry = lot.expiry_date

        for summary in summaries.values():
            summary.status = classify_expiry(
                summary.nearest_expiry, today, settings.expiry_warning_days
            )

        return list(summaries.values())

    # ===================
    # WRITE OPERATIONS
    # ===================

    def update_if_unchanged(
        self,
        lot_id: int,
        expected_quantity: Decimal,
        quantity: Decimal,
        status: LotStatus,
        expected_status: LotStatus = LotStatus.AVAILABLE,
    ) -> LotResponse:
        """
        Set a lot's quantity and status if nobody changed it since it was read.

        Args:
            lot_id: Lot to update
            expected_quantity: Quantity the caller read
            quantity: New quantity
            status: New status
            expected_status: Status the caller read

        Returns:
            Updated LotResponse

        Raises:
            StockConflictError: If the lot no longer matches what was read
            DatabaseError: If the update itself fails
        """
        try:
            result = (
                self.db.table(self.table)
                .update({
                    "quantity": quantity_to_db(quantity),
                    "status": status.value,
                })
                .eq("id", lot_id)
                .eq("status", expected_status.value)
                .eq("quantity", quantity_to_db(expected_quantity))
                .execute()
            )
        except Exception as e:
            logger.error(
                "update_lot_failed",
                lot_id=lot_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e), {"lot_id": lot_id})

        if not result.data:
            logger.warning(
                "lot_changed_concurrently",
                lot_id=lot_id,
                expected_quantity=str(expected_quantity),
                expected_status=expected_status.value,
            )
            raise StockConflictError(str(lot_id), str(expected_quantity))

        return LotResponse(**result.data[0])

    def discard(self, lot_id: int, reason: str) -> LotResponse:
        """
        Mark an AVAILABLE lot as DISCARDED.

        Quantity is left as is so the discarded amount stays on record.

        Raises:
            InvalidDiscardReasonError: If reason is empty
            LotNotFoundError: If lot doesn't exist
            LotNotAvailableError: If lot is already USED or DISCARDED
            StockConflictError: If the lot changed while discarding
        """
        reason = (reason or "").strip()
        if not reason:
            raise InvalidDiscardReasonError()

        lot = self.get_by_id(lot_id)
        if lot.status != LotStatus.AVAILABLE:
            raise LotNotAvailableError(str(lot_id), lot.status.value)

        logger.info("discarding_lot", lot_id=lot_id, quantity=str(lot.quantity))

        try:
            result = (
                self.db.table(self.table)
                .update({
                    "status": LotStatus.DISCARDED.value,
                    "discard_reason": reason,
                    "discarded_at": datetime.utcnow().isoformat(),
                })
                .eq("id", lot_id)
                .eq("status", LotStatus.AVAILABLE.value)
                .eq("quantity", quantity_to_db(lot.quantity))
                .execute()
            )
        except Exception as e:
            logger.error("discard_lot_failed", lot_id=lot_id, error=str(e))
            raise DatabaseError("update", str(e), {"lot_id": lot_id})

        if not result.data:
            logger.warning("lot_changed_concurrently", lot_id=lot_id)
            raise StockConflictError(str(lot_id), str(lot.quantity))

        logger.info("lot_discarded", lot_id=lot_id, reason=reason)

        return LotResponse(**result.data[0])


# Singleton instance for convenience
_lot_service: Optional[LotService] = None


def get_lot_service() -> LotService:
    """Get or create LotService instance."""
    global _lot_service
    if _lot_service is None:
        _lot_service = LotService()
    return _lot_service
