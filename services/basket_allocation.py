"""
Basket allocation: pure planning functions.

No I/O happens here. BasketService loads foods and lots, calls these, and
applies the resulting plan.

Algorithm:
1. REQUIRE   per-basket quantity x baskets for every basket food
2. CHECK     sum available lots per food, report every shortfall
3. SORT      each food's lots by expiry ascending, no-expiry last, then id
4. ALLOCATE  consume lots in that order until the requirement is met
             - lot <= remaining: lot goes to 0 and becomes USED
             - lot >  remaining: lot keeps the difference and stays AVAILABLE
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

import structlog

from exceptions import InsufficientStockError
from models.basket import (
    AllocationPlan,
    FoodAllocation,
    FoodRequirement,
    LotAllocation,
    MissingFood,
)
from models.food import FoodResponse
from models.lot import LotResponse, LotStatus

logger = structlog.get_logger(__name__)


ZERO = Decimal("0")
DEFAULT_PER_BASKET = Decimal("1")


# ===================
# REQUIREMENTS
# ===================

def per_basket_quantity(food: FoodResponse) -> Decimal:
    """
    Units of a food that go into one basket.

    Foods outside the basket need 0. Basket foods with no quantity set, or
    a quantity <= 0, need 1.
    """
    if not food.in_basket:
        return ZERO
    if food.qty_per_basket is None or food.qty_per_basket <= 0:
        return DEFAULT_PER_BASKET
    return food.qty_per_basket


def calculate_requirements(
    quantity: int,
    foods: Iterable[FoodResponse],
) -> Dict[int, Decimal]:
    """
    Required units per food for `quantity` baskets.

    Foods not in the basket are left out. Keys keep catalog order.
    """
    requirements: Dict[int, Decimal] = {}
    for food in foods:
        if not food.in_basket:
            continue
        requirements[food.id] = per_basket_quantity(food) * quantity
    return requirements


# ===================
# AVAILABILITY
# ===================

def group_lots_by_food(lots: Iterable[LotResponse]) -> Dict[int, List[LotResponse]]:
    """Group AVAILABLE lots by food_id, keeping their order."""
    grouped: Dict[int, List[LotResponse]] = defaultdict(list)
    for lot in lots:
        if lot.status != LotStatus.AVAILABLE:
            continue
        grouped[lot.food_id].append(lot)
    return dict(grouped)


def available_quantity(lots: Iterable[LotResponse]) -> Decimal:
    """Total units across lots."""
    return sum((lot.quantity for lot in lots), ZERO)


def summarize_requirements(
    requirements: Dict[int, Decimal],
    foods: Iterable[FoodResponse],
    lots_by_food: Dict[int, List[LotResponse]],
) -> List[FoodRequirement]:
    """Required, available and missing units for every required food."""
    summary = []
    for food in foods:
        if food.id not in requirements:
            continue
        required = requirements[food.id]
        available = available_quantity(lots_by_food.get(food.id, []))
        summary.append(FoodRequirement(
            food_id=food.id,
            name=food.name,
            per_basket=per_basket_quantity(food),
            required=required,
            available=available,
            missing=max(ZERO, required - available),
        ))
    return summary


def check_availability(
    requirements: Dict[int, Decimal],
    foods: Iterable[FoodResponse],
    lots_by_food: Dict[int, List[LotResponse]],
) -> List[MissingFood]:
    """
    Foods whose available stock is below the requirement.

    An empty list means every food can be covered. Any entry blocks the
    whole assembly.
    """
    return [
        MissingFood(
            food_id=row.food_id,
            name=row.name,
            missing_quantity=row.missing,
        )
        for row in summarize_requirements(requirements, foods, lots_by_food)
        if row.missing > 0
    ]


# ===================
# FIFO ALLOCATION
# ===================

def sort_lots_fifo(lots: Iterable[LotResponse]) -> List[LotResponse]:
    """Soonest expiry first, lots without expiry last, ties by id."""
    return sorted(
        lots,
        key=lambda lot: (
            lot.expiry_date is None,
            lot.expiry_date or date.max,
            lot.id,
        ),
    )


def allocate_fifo(
    food_id: int,
    required: Decimal,
    lots: Iterable[LotResponse],
) -> FoodAllocation:
    """
    Plan consumption of `required` units of one food.

    Raises:
        InsufficientStockError: If the lots cannot cover `required`
    """
    allocation = FoodAllocation(food_id=food_id, required=required)
    remaining = required
    total_consumed = ZERO

    for lot in sort_lots_fifo(lots):
        if remaining <= 0:
            break
        if lot.quantity <= 0:
            continue

        if lot.quantity <= remaining:
            consumed = lot.quantity
            new_quantity = ZERO
            new_status = LotStatus.USED
        else:
            consumed = remaining
            new_quantity = lot.quantity - remaining
            new_status = LotStatus.AVAILABLE

        allocation.lots.append(LotAllocation(
            lot_id=lot.id,
            food_id=food_id,
            previous_quantity=lot.quantity,
            new_quantity=new_quantity,
            consumed=consumed,
            new_status=new_status,
        ))
        total_consumed += consumed
        remaining -= consumed

    if remaining > 0:
        logger.error(
            "fifo_allocation_short",
            food_id=food_id,
            required=str(required),
            remaining=str(remaining),
        )
        raise InsufficientStockError(str(food_id), str(remaining))

    allocation.total_consumed = total_consumed
    return allocation


def plan_allocation(
    requirements: Dict[int, Decimal],
    lots_by_food: Dict[int, List[LotResponse]],
) -> AllocationPlan:
    """Allocation plan for every food with a positive requirement."""
    plan = AllocationPlan()
    for food_id, required in requirements.items():
        if required <= 0:
            continue
        plan.foods.append(
            allocate_fifo(food_id, required, lots_by_food.get(food_id, []))
        )

    logger.debug(
        "allocation_planned",
        foods=len(plan.foods),
        lot_changes=len(plan.lot_allocations),
    )
    return plan
