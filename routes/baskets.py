"""
Basket API routes.

The requesting user's identity comes in the X-User-Email header, set by the
auth layer in front of this API.
"""

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse
from typing import Optional
from datetime import datetime
import structlog

from models.basket import (
    BasketAssemblyRequest,
    BasketAssemblyResult,
    BasketBatchResponse,
    BasketPreviewResponse,
)
from services.basket_service import get_basket_service
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
    # Store failures and unexpected errors: detail goes to the log only
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


def parse_query_quantity(raw: str):
    """Integer literal to int; anything else is returned as text for the service to reject."""
    try:
        return int(raw)
    except ValueError:
        return raw


# ===================
# ROUTES
# ===================

@router.post("/assemble", response_model=BasketAssemblyResult)
async def assemble_baskets(
    request: BasketAssemblyRequest,
    x_user_email: Optional[str] = Header(None, description="Requesting user")
):
    """
    Assemble baskets from available stock.

    Consumes lots soonest-expiry first. Either every basket is assembled
    or nothing changes.

    Raises:
        400: Not enough stock (body lists the missing foods)
        409: Stock changed concurrently, retry
        422: Quantity is not a positive whole number
    """
    try:
        service = get_basket_service()
        result = service.assemble_baskets(request.quantity, created_by=x_user_email)

        if not result.success:
            return JSONResponse(
                status_code=400,
                content=result.model_dump(mode="json")
            )

        return result

    except Exception as e:
        return handle_error(e)


@router.get("/preview", response_model=BasketPreviewResponse)
async def preview_baskets(
    quantity: str = Query(..., description="Number of baskets to check")
):
    """
    Show requirement vs availability for a basket quantity.

    Read-only.

    Raises:
        422: Quantity is not a positive whole number
    """
    try:
        service = get_basket_service()
        return service.preview_baskets(parse_query_quantity(quantity))

    except Exception as e:
        return handle_error(e)


@router.get("/batches", response_model=list[BasketBatchResponse])
async def list_batches(
    limit: int = Query(20, ge=1, le=100, description="Max batches to return")
):
    """List recent basket batches, newest first."""
    try:
        service = get_basket_service()
        return service.list_batches(limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/batches/{batch_id}", response_model=BasketBatchResponse)
async def get_batch(batch_id: int):
    """
    Get a basket batch with its items.

    Raises:
        404: Batch not found
    """
    try:
        service = get_basket_service()
        return service.get_batch(batch_id)

    except Exception as e:
        return handle_error(e)
