"""
Repository functions for persisted pallets.

Pallets of an order are replaced as a whole: delete_pallets_for_order
removes every pallet and pallet item of the order, insert_plan writes the
pallets of a plan in plan order. Pallet ids therefore grow with the plan
position, which is what pallet numbering relies on.
"""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pallet_planner.db.models import OrderItem, Pallet, PalletItem, Product
from pallet_planner.packing.plan import PackingPlan
from pallet_planner.repos.common import active_only

logger = logging.getLogger(__name__)


async def list_pallets_for_order(
    db: AsyncSession, order_id: int, *, include_deleted: bool = False
) -> list[Pallet]:
    """Pallets of an order in numbering order, with their items loaded."""
    stmt = (
        select(Pallet)
        .options(selectinload(Pallet.items.and_(PalletItem.is_deleted.is_(False))))
        .where(Pallet.order_id == order_id)
        .order_by(Pallet.id)
        .execution_options(populate_existing=True)
    )
    stmt = active_only(stmt, Pallet, include_deleted)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_pallets_for_order(db: AsyncSession, order_id: int) -> int:
    stmt = active_only(
        select(func.count()).select_from(Pallet).where(Pallet.order_id == order_id), Pallet
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def delete_pallets_for_order(db: AsyncSession, order_id: int) -> int:
    """
    Physically delete every pallet of an order, soft-deleted ones included.

    Returns:
        Number of pallets removed
    """
    pallet_ids = select(Pallet.id).where(Pallet.order_id == order_id).scalar_subquery()
    await db.execute(
        delete(PalletItem)
        .where(PalletItem.pallet_id.in_(pallet_ids))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        delete(Pallet)
        .where(Pallet.order_id == order_id)
        .execution_options(synchronize_session=False)
    )
    removed = result.rowcount or 0
    logger.debug(f"Deleted {removed} pallets of order {order_id}")
    return removed


async def insert_plan(db: AsyncSession, order_id: int, plan: PackingPlan) -> list[Pallet]:
    """
    Insert the pallets of a plan in plan order.

    Each pallet is flushed before the next one so that ids follow the plan
    position.
    """
    pallets = []
    for _number, planned in plan.numbered_pallets():
        pallet = Pallet(order_id=order_id)
        db.add(pallet)
        await db.flush()

        for position, item in enumerate(planned.items):
            db.add(
                PalletItem(
                    pallet_id=pallet.id,
                    order_item_id=item.order_item_id,
                    quantity=item.quantity,
                    position=position,
                )
            )
        await db.flush()
        pallets.append(pallet)

    logger.debug(f"Inserted {len(pallets)} pallets for order {order_id}")
    return pallets


async def quantities_on_pallets(db: AsyncSession, order_id: int) -> dict[int, int]:
    """Placed quantity per order item of an order, over active pallets."""
    stmt = (
        select(PalletItem.order_item_id, func.sum(PalletItem.quantity))
        .join(Pallet, PalletItem.pallet_id == Pallet.id)
        .where(
            Pallet.order_id == order_id,
            Pallet.is_deleted.is_(False),
            PalletItem.is_deleted.is_(False),
        )
        .group_by(PalletItem.order_item_id)
    )
    result = await db.execute(stmt)
    return {order_item_id: int(total) for order_item_id, total in result.all()}


async def load_pallet_item_details(
    db: AsyncSession, order_item_ids: list[int]
) -> dict[int, OrderItem]:
    """Order items referenced by pallet items, with product and group loaded."""
    if not order_item_ids:
        return {}
    stmt = (
        select(OrderItem)
        .options(selectinload(OrderItem.product).selectinload(Product.group))
        .where(OrderItem.id.in_(order_item_ids))
    )
    result = await db.execute(stmt)
    return {item.id: item for item in result.scalars().all()}
