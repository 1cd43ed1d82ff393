"""
Plain records exchanged between the persistence layer and the packer.

Input side: PackingOrder / PackingLine / ProductSnapshot, resolved from ORM
rows at the persistence boundary so that the packer never touches a session.

Output side: PackingPlan with its PlannedPallets and Remainders.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pallet_planner.db.validators import to_decimal
from pallet_planner.domain.enums import ProductGroupName, RemainderReason


@dataclass(frozen=True)
class ProductSnapshot:
    """The product attributes the packer needs."""

    product_id: int
    packing_coefficient: Decimal | None
    group: ProductGroupName | None
    name: str = ""

    def __post_init__(self) -> None:
        if self.packing_coefficient is not None:
            object.__setattr__(self, "packing_coefficient", to_decimal(self.packing_coefficient))
        if self.group is not None:
            object.__setattr__(self, "group", ProductGroupName(self.group))


@dataclass(frozen=True)
class PackingLine:
    """One order item annotated with its product (None if it did not resolve)."""

    order_item_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    product: ProductSnapshot | None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    @property
    def packing_coefficient(self) -> Decimal | None:
        return self.product.packing_coefficient if self.product else None

    @property
    def group(self) -> ProductGroupName | None:
        return self.product.group if self.product else None


@dataclass(frozen=True)
class PackingOrder:
    """An order as the packer sees it."""

    order_id: int
    number: str = ""
    lines: tuple[PackingLine, ...] = ()

    def line(self, order_item_id: int) -> PackingLine | None:
        for line in self.lines:
            if line.order_item_id == order_item_id:
                return line
        return None


@dataclass(frozen=True)
class PlannedPalletItem:
    order_item_id: int
    product_id: int
    quantity: int


@dataclass(frozen=True)
class PlannedPallet:
    """
    A pallet of the plan.

    ``load`` is the occupied capacity (sum of quantity x coefficient);
    ``groups`` lists the product groups in placement order.
    """

    items: tuple[PlannedPalletItem, ...]
    load: Decimal
    groups: tuple[ProductGroupName, ...] = ()

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def quantity_of(self, order_item_id: int) -> int:
        return sum(item.quantity for item in self.items if item.order_item_id == order_item_id)


@dataclass(frozen=True)
class Remainder:
    """Quantity of an order item the packer could not place, and why."""

    order_item_id: int
    quantity: int
    reason: RemainderReason


@dataclass(frozen=True)
class PackingPlan:
    """
    Result of one packer run.

    Pallets are numbered 1..N by their position in ``pallets``.
    ``allow_mixed_groups`` records whether the run let groups share a pallet.
    """

    order_id: int
    capacity: Decimal
    pallets: tuple[PlannedPallet, ...] = ()
    remainders: tuple[Remainder, ...] = ()
    allow_mixed_groups: bool = False

    @property
    def is_complete(self) -> bool:
        """True when every order item was fully placed."""
        return not self.remainders

    def numbered_pallets(self) -> Iterator[tuple[int, PlannedPallet]]:
        return enumerate(self.pallets, start=1)

    def placed_quantity(self, order_item_id: int) -> int:
        return sum(pallet.quantity_of(order_item_id) for pallet in self.pallets)

    def remainder_quantity(self, order_item_id: int) -> int:
        return sum(r.quantity for r in self.remainders if r.order_item_id == order_item_id)

    @property
    def remainders_by_item(self) -> dict[int, Remainder]:
        return {remainder.order_item_id: remainder for remainder in self.remainders}

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; identical plans give identical dicts."""
        return {
            "orderId": self.order_id,
            "capacity": str(self.capacity),
            "allowMixedGroups": self.allow_mixed_groups,
            "pallets": [
                {
                    "number": number,
                    "load": str(pallet.load),
                    "groups": [group.value for group in pallet.groups],
                    "items": [
                        {
                            "orderItemId": item.order_item_id,
                            "productId": item.product_id,
                            "quantity": item.quantity,
                        }
                        for item in pallet.items
                    ],
                }
                for number, pallet in self.numbered_pallets()
            ],
            "remainders": [
                {
                    "orderItemId": remainder.order_item_id,
                    "quantity": remainder.quantity,
                    "reason": remainder.reason.value,
                }
                for remainder in self.remainders
            ],
        }
