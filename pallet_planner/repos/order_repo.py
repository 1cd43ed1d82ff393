"""
Repository functions for Order and OrderItem entities.

get_order raises NotFoundError for an unknown id; the lookups by number,
date or region return None / empty lists instead. Orders are loaded with
their active items, each item's product and the product's group.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pallet_planner.core.errors import NotFoundError
from pallet_planner.db.models import Order, OrderItem, Product, Warehouse
from pallet_planner.repos.common import active_only

# Constants for common messages
ORDER_NOT_FOUND = "Order not found"

logger = logging.getLogger(__name__)


def _with_items():
    """Loader option: active items -> product -> group."""
    return (
        selectinload(Order.items.and_(OrderItem.is_deleted.is_(False)))
        .selectinload(OrderItem.product)
        .selectinload(Product.group)
    )


async def get_order(db: AsyncSession, order_id: int, *, include_deleted: bool = False) -> Order:
    stmt = (
        select(Order)
        .options(_with_items())
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    stmt = active_only(stmt, Order, include_deleted)
    result = await db.execute(stmt)
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError(ORDER_NOT_FOUND, details={"order_id": order_id})
    return order


async def get_order_by_number(db: AsyncSession, number: str) -> Order | None:
    stmt = active_only(
        select(Order).options(_with_items()).where(Order.number == number).order_by(Order.id),
        Order,
    )
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def list_orders_by_delivery_date(db: AsyncSession, delivery_date: date) -> list[Order]:
    stmt = active_only(
        select(Order)
        .options(_with_items())
        .where(Order.delivery_date == delivery_date)
        .order_by(Order.id),
        Order,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_orders_by_delivery_date_and_region(
    db: AsyncSession, delivery_date: date, region: str
) -> list[Order]:
    """Orders due on a date whose delivery warehouse lies in the given region."""
    stmt = active_only(
        select(Order)
        .join(Warehouse, Order.warehouse_gln == Warehouse.gln)
        .options(_with_items())
        .where(Order.delivery_date == delivery_date, Warehouse.region == region)
        .order_by(Order.id),
        Order,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_order_items(
    db: AsyncSession, order_id: int, *, include_deleted: bool = False
) -> list[OrderItem]:
    stmt = (
        select(OrderItem)
        .options(selectinload(OrderItem.product).selectinload(Product.group))
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    )
    stmt = active_only(stmt, OrderItem, include_deleted)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def lock_order(db: AsyncSession, order_id: int) -> int:
    """
    Take a row lock on the order for the rest of the transaction.

    Backends without row locks (SQLite) fall back to the transaction's
    own isolation.

    Raises:
        NotFoundError: If the order does not exist or is soft-deleted
    """
    stmt = active_only(select(Order.id).where(Order.id == order_id), Order).with_for_update()
    result = await db.execute(stmt)
    locked_id = result.scalar_one_or_none()
    if locked_id is None:
        raise NotFoundError(ORDER_NOT_FOUND, details={"order_id": order_id})
    logger.debug(f"Locked order {order_id}")
    return locked_id
