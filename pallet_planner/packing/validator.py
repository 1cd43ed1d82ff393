"""
Input and output checks for the packer.

validate_packing_input rejects input the packer cannot work with (fatal,
raised before any packing). verify_plan checks a finished plan against the
order it was made for; the packing store runs it before every write so a
plan that would break the order's quantities is never persisted.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from pallet_planner.core.errors import (
    DuplicateOrderItemError,
    InvalidCapacityError,
    InvalidQuantityError,
    InvalidUnitPriceError,
    MissingProductError,
    ValidationError,
)
from pallet_planner.packing.config import PackerConfig
from pallet_planner.packing.plan import PackingLine, PackingOrder, PackingPlan, PlannedPallet

logger = logging.getLogger(__name__)


def validate_packing_input(order: PackingOrder, config: PackerConfig) -> None:
    """
    Check configuration and order lines before packing.

    Args:
        order: Order to pack
        config: Packer configuration

    Raises:
        InvalidCapacityError: If capacity is zero or negative
        MissingProductError: If a line's product did not resolve
        InvalidQuantityError: If a line has a negative quantity
        InvalidUnitPriceError: If a line has a negative unit price
        DuplicateOrderItemError: If an order item appears on two lines
    """
    if config.capacity <= 0:
        raise InvalidCapacityError(
            f"Pallet capacity must be greater than 0, got {config.capacity}",
            entity_id=order.order_id,
            details={"capacity": str(config.capacity)},
        )

    seen: set[int] = set()
    for line in order.lines:
        if line.order_item_id in seen:
            raise DuplicateOrderItemError(
                f"Order item {line.order_item_id} appears more than once in order {order.order_id}",
                entity_id=line.order_item_id,
                details={"order_id": order.order_id},
            )
        seen.add(line.order_item_id)

        if line.product is None:
            logger.error(
                f"Order item {line.order_item_id} references missing product {line.product_id}"
            )
            raise MissingProductError(
                f"Product {line.product_id} of order item {line.order_item_id} not found",
                entity_id=line.order_item_id,
                details={"product_id": line.product_id, "order_id": order.order_id},
            )

        if line.quantity < 0:
            raise InvalidQuantityError(
                f"Order item {line.order_item_id} has negative quantity {line.quantity}",
                entity_id=line.order_item_id,
                details={"quantity": line.quantity},
            )

        if line.unit_price < 0:
            raise InvalidUnitPriceError(
                f"Order item {line.order_item_id} has negative unit price {line.unit_price}",
                entity_id=line.order_item_id,
                details={"unit_price": str(line.unit_price)},
            )


def verify_plan(plan: PackingPlan, order: PackingOrder) -> None:
    """
    Check that a plan is consistent with the order it is saved for.

    - every pallet item references an item of this order
    - no pallet is empty
    - a pallet's load, recomputed from the order's coefficients, fits capacity
    - a pallet holds one product group unless the plan allows mixing
    - placed + remaining never exceeds an item's ordered quantity

    Raises:
        ValidationError: On the first violation found
    """
    if plan.order_id != order.order_id:
        raise ValidationError(
            f"Plan for order {plan.order_id} cannot be saved to order {order.order_id}",
            details={"plan_order_id": plan.order_id, "order_id": order.order_id},
        )

    lines = {line.order_item_id: line for line in order.lines}
    ordered = {order_item_id: line.quantity for order_item_id, line in lines.items()}
    accounted: dict[int, int] = defaultdict(int)

    for number, pallet in plan.numbered_pallets():
        if not pallet.items:
            raise ValidationError(
                f"Pallet {number} of order {order.order_id} is empty",
                details={"pallet_number": number},
            )
        for item in pallet.items:
            if item.order_item_id not in ordered:
                raise ValidationError(
                    f"Order item {item.order_item_id} does not belong to order {order.order_id}",
                    details={"order_item_id": item.order_item_id, "pallet_number": number},
                )
            if item.quantity <= 0:
                raise ValidationError(
                    f"Pallet {number} holds non-positive quantity of item {item.order_item_id}",
                    details={"order_item_id": item.order_item_id, "quantity": item.quantity},
                )
            accounted[item.order_item_id] += item.quantity

        load = _pallet_load(number, pallet, lines)
        if load > plan.capacity:
            raise ValidationError(
                f"Pallet {number} load {load} exceeds capacity {plan.capacity}",
                details={"pallet_number": number, "load": str(load)},
            )

        groups = {lines[item.order_item_id].group for item in pallet.items}
        if not plan.allow_mixed_groups and len(groups) > 1:
            raise ValidationError(
                f"Pallet {number} mixes product groups",
                details={
                    "pallet_number": number,
                    "groups": sorted(group.value for group in groups if group is not None),
                },
            )

    for remainder in plan.remainders:
        accounted[remainder.order_item_id] += remainder.quantity

    for order_item_id, quantity in accounted.items():
        if quantity > ordered.get(order_item_id, 0):
            raise ValidationError(
                f"Plan accounts for {quantity} units of order item {order_item_id}, "
                f"ordered {ordered.get(order_item_id, 0)}",
                details={"order_item_id": order_item_id, "accounted": quantity},
            )


def _pallet_load(number: int, pallet: PlannedPallet, lines: dict[int, PackingLine]) -> Decimal:
    load = Decimal(0)
    for item in pallet.items:
        coefficient = lines[item.order_item_id].packing_coefficient
        if coefficient is None or coefficient <= 0:
            raise ValidationError(
                f"Order item {item.order_item_id} on pallet {number} has no usable coefficient",
                details={"order_item_id": item.order_item_id, "pallet_number": number},
            )
        load += coefficient * item.quantity
    return load
