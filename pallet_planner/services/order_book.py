"""
Order book: derived values of orders and their items.

Pure functions take the ORM rows already loaded by order_repo; the async
helpers fetch the extra facts they need (invoice, pallet quantities).
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from pallet_planner.db.models import Order, OrderItem
from pallet_planner.domain.enums import OrderStatus, PackingStatus
from pallet_planner.repos import invoice_repo, pallet_repo

URGENT_WINDOW = timedelta(days=3)


def _active_items(order: Order) -> list[OrderItem]:
    return [item for item in order.items if not item.is_deleted]


def total_amount(order: Order) -> Decimal:
    """Sum of quantity x unit price over the order's items."""
    return sum((item.total_price for item in _active_items(order)), Decimal(0))


def total_quantity(order: Order) -> int:
    return sum(item.quantity for item in _active_items(order))


def items_count(order: Order) -> int:
    return len(_active_items(order))


def days_to_delivery(order: Order, today: date | None = None) -> int:
    """Days until the delivery date; negative once it has passed."""
    today = today or date.today()
    return (order.delivery_date - today).days


def classify_order_status(
    delivery_date: date, has_invoice: bool, today: date | None = None
) -> OrderStatus:
    """
    Status of an order.

    Precedence: Overdue > Invoiced > Urgent > InProgress. An order is
    urgent when it is due within the next three days, today included.
    """
    today = today or date.today()
    if delivery_date < today:
        return OrderStatus.OVERDUE
    if has_invoice:
        return OrderStatus.INVOICED
    if delivery_date - today <= URGENT_WINDOW:
        return OrderStatus.URGENT
    return OrderStatus.IN_PROGRESS


async def order_status(db: AsyncSession, order: Order, today: date | None = None) -> OrderStatus:
    invoiced = await invoice_repo.has_invoice(db, order.id)
    return classify_order_status(order.delivery_date, invoiced, today)


@dataclass(frozen=True)
class ItemPacking:
    """How much of one order item sits on pallets."""

    order_item_id: int
    quantity: int
    quantity_on_pallets: int

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - self.quantity_on_pallets

    @property
    def packing_percentage(self) -> Decimal:
        if self.quantity == 0:
            return Decimal(0)
        return Decimal(self.quantity_on_pallets) / Decimal(self.quantity) * 100

    @property
    def packing_status(self) -> PackingStatus:
        if self.quantity_on_pallets <= 0:
            return PackingStatus.NOT_PACKED
        if self.remaining_quantity <= 0:
            return PackingStatus.FULLY_PACKED
        return PackingStatus.PARTIALLY_PACKED


async def order_item_packing(db: AsyncSession, order: Order) -> dict[int, ItemPacking]:
    """Packing progress of every active item of an order, keyed by item id."""
    placed = await pallet_repo.quantities_on_pallets(db, order.id)
    return {
        item.id: ItemPacking(
            order_item_id=item.id,
            quantity=item.quantity,
            quantity_on_pallets=placed.get(item.id, 0),
        )
        for item in _active_items(order)
    }
