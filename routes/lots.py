"""
Lot API routes.

Stock listing, expiry risk and discard.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
from datetime import datetime
import structlog

from models.lot import (
    ExpiringLot,
    ExpiryWindow,
    FoodStockSummary,
    LotDiscardRequest,
    LotResponse,
)
from services.lot_service import get_lot_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError) and e.status_code < 500:
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": e.code if isinstance(e, AppError) else "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("/available", response_model=list[LotResponse])
async def list_available_lots(
    food_id: Optional[int] = Query(None, description="Filter by food")
):
    """AVAILABLE lots, soonest expiry first."""
    try:
        service = get_lot_service()
        return service.list_available_lots(food_id=food_id)

    except Exception as e:
        return handle_error(e)


@router.get("/expiring", response_model=list[ExpiringLot])
async def list_expiring_lots(
    window: ExpiryWindow = Query(ExpiryWindow.ALL, description="Expiry window")
):
    """
    AVAILABLE lots with an expiry date and their risk.

    Windows: expired, warning (next expiry_warning_days),
    horizon (next expiry_horizon_days), all.
    """
    try:
        service = get_lot_service()
        return service.get_expiring_lots(window=window)

    except Exception as e:
        return handle_error(e)


@router.get("/summary", response_model=list[FoodStockSummary])
async def get_stock_summary():
    """Available quantity and nearest expiry per food."""
    try:
        service = get_lot_service()
        return service.get_stock_summary()

    except Exception as e:
        return handle_error(e)


@router.get("/{lot_id}", response_model=LotResponse)
async def get_lot(lot_id: int):
    """
    Get a single lot.

    Raises:
        404: Lot not found
    """
    try:
        service = get_lot_service()
        return service.get_by_id(lot_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{lot_id}/discard", response_model=LotResponse)
async def discard_lot(lot_id: int, request: LotDiscardRequest):
    """
    Discard an AVAILABLE lot.

    Raises:
        404: Lot not found
        409: Lot already used/discarded, or changed concurrently
        422: Empty reason
    """
    try:
        service = get_lot_service()
        return service.discard(lot_id, request.reason)

    except Exception as e:
        return handle_error(e)
