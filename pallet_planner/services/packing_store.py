"""
Packing Store

Boundary between the packer and the database. Orders are read into plain
PackingOrder records, and packing plans are written back as pallets.

Saving a plan is atomic: the order row is locked, its existing pallets
and pallet items are deleted, and the plan's pallets are inserted in plan
order, all in one transaction. If any step fails the transaction rolls
back and the previously saved pallets stay as they were. Saving the same
plan twice leaves the same pallets behind.
"""

import logging
from decimal import Decimal
from typing import Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pallet_planner.core.config import settings
from pallet_planner.core.db import get_async_sessionmaker
from pallet_planner.core.observability import metrics, track_duration
from pallet_planner.db.models import Order, OrderItem, SoftDeleteMixin
from pallet_planner.packing.plan import PackingLine, PackingOrder, PackingPlan
from pallet_planner.packing.validator import verify_plan
from pallet_planner.packing.view import PalletLine, PalletView
from pallet_planner.repos import order_repo, pallet_repo
from pallet_planner.services.catalog import product_group, to_snapshot

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=SoftDeleteMixin)


class PackingStore(Protocol):
    """Persistence operations the packing workflow depends on."""

    async def load_order(self, order_id: int) -> PackingOrder: ...

    async def save_packing_plan(self, order_id: int, plan: PackingPlan) -> None: ...

    async def soft_delete(self, entity: _E) -> _E: ...

    async def restore(self, entity: _E) -> _E: ...

    async def load_pallet_views(
        self, order_id: int, capacity: Decimal | None = None
    ) -> list[PalletView]: ...


def to_packing_order(order: Order) -> PackingOrder:
    """Resolve an ORM order, with items and products loaded, into packer input."""
    return PackingOrder(
        order_id=order.id,
        number=order.number,
        lines=tuple(_packing_line(item) for item in order.items if not item.is_deleted),
    )


def _packing_line(item: OrderItem) -> PackingLine:
    return PackingLine(
        order_item_id=item.id,
        product_id=item.product_id,
        quantity=item.quantity,
        unit_price=item.unit_price,
        product=to_snapshot(item.product),
    )


class SqlPackingStore:
    """PackingStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or get_async_sessionmaker()

    async def load_order(self, order_id: int) -> PackingOrder:
        """
        Load an order with its items and products.

        Raises:
            NotFoundError: If the order does not exist
        """
        async with self._session_factory() as db:
            order = await order_repo.get_order(db, order_id)
            return to_packing_order(order)

    async def save_packing_plan(self, order_id: int, plan: PackingPlan) -> None:
        """
        Replace the pallets of an order with the pallets of a plan.

        Raises:
            NotFoundError: If the order does not exist
            ValidationError: If the plan does not fit the order's items;
                nothing is written
        """
        with track_duration(metrics.plan_save_duration_seconds, metrics.plan_saves_total):
            async with self._session_factory() as db, db.begin():
                await order_repo.lock_order(db, order_id)
                order = await order_repo.get_order(db, order_id)
                verify_plan(plan, to_packing_order(order))

                removed = await pallet_repo.delete_pallets_for_order(db, order_id)
                await pallet_repo.insert_plan(db, order_id, plan)

        logger.info(
            f"Saved packing plan for order {order_id}",
            extra={
                "pallets_removed": removed,
                "pallets_written": len(plan.pallets),
                "remainders": len(plan.remainders),
            },
        )

    async def soft_delete(self, entity: _E) -> _E:
        """Flag an entity as deleted and persist the flag; returns the persisted copy."""
        entity.soft_delete()
        return await self._merge(entity)

    async def restore(self, entity: _E) -> _E:
        entity.restore()
        return await self._merge(entity)

    async def _merge(self, entity: _E) -> _E:
        async with self._session_factory() as db, db.begin():
            merged = await db.merge(entity)
        logger.info(f"Persisted is_deleted={entity.is_deleted} for {entity!r}")
        return merged

    async def load_pallet_views(
        self, order_id: int, capacity: Decimal | None = None
    ) -> list[PalletView]:
        """
        Views of an order's persisted pallets, numbered 1..N by pallet id.

        Raises:
            NotFoundError: If the order does not exist
        """
        capacity = settings.packer_capacity if capacity is None else capacity
        async with self._session_factory() as db:
            order = await order_repo.get_order(db, order_id)
            pallets = await pallet_repo.list_pallets_for_order(db, order_id)
            order_items = await pallet_repo.load_pallet_item_details(
                db, sorted({item.order_item_id for pallet in pallets for item in pallet.items})
            )

            views = []
            for number, pallet in enumerate(pallets, start=1):
                lines = []
                for pallet_item in pallet.items:
                    order_item = order_items[pallet_item.order_item_id]
                    product = order_item.product
                    lines.append(
                        PalletLine(
                            order_item_id=order_item.id,
                            quantity=pallet_item.quantity,
                            unit_price=order_item.unit_price,
                            packing_coefficient=product.packing_coefficient if product else None,
                            group=product_group(product),
                        )
                    )
                views.append(
                    PalletView(
                        number=number,
                        lines=tuple(lines),
                        capacity=capacity,
                        order_number=order.number,
                        pallet_id=pallet.id,
                    )
                )
            return views
