"""
Read-only projections over a pallet.

A PalletView is built either from a pallet of a fresh PackingPlan
(plan_views) or from a persisted pallet (see SqlPackingStore.load_pallet_views);
both paths feed the same derived values.
"""

from dataclasses import dataclass
from decimal import Decimal

from pallet_planner.domain.enums import PalletStatus, ProductGroupName
from pallet_planner.packing.plan import PackingOrder, PackingPlan

HUNDRED = Decimal(100)

# Lower bounds of the fill statuses, highest first
FILL_THRESHOLDS: tuple[tuple[Decimal, PalletStatus], ...] = (
    (Decimal(100), PalletStatus.FULL),
    (Decimal(80), PalletStatus.NEARLY_FULL),
    (Decimal(50), PalletStatus.PARTIALLY_FILLED),
)


def classify_fill(fill_percentage: Decimal) -> PalletStatus:
    """Status label for a non-empty pallet with the given fill."""
    for threshold, status in FILL_THRESHOLDS:
        if fill_percentage >= threshold:
            return status
    return PalletStatus.LOW_FILL


@dataclass(frozen=True)
class PalletLine:
    """An order item's quantity on a pallet, with the values needed to price and weigh it."""

    order_item_id: int
    quantity: int
    unit_price: Decimal
    packing_coefficient: Decimal | None
    group: ProductGroupName | None

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def load(self) -> Decimal:
        # Lines without a coefficient occupy no capacity
        if self.packing_coefficient is None:
            return Decimal(0)
        return self.packing_coefficient * self.quantity


@dataclass(frozen=True)
class PackingSlip:
    """Packing slip data for one pallet."""

    pallet_number: int
    order_number: str | None
    items_count: int
    total_quantity: int
    total_value: Decimal
    fill_percentage: Decimal
    product_groups: tuple[ProductGroupName, ...]

    @property
    def has_mixed_groups(self) -> bool:
        return len(self.product_groups) > 1

    def render(self) -> str:
        lines = [
            f"Pallet No. {self.pallet_number}",
            f"Order: {self.order_number or '-'}",
            f"Items: {self.items_count}",
            f"Total quantity: {self.total_quantity} pcs",
            f"Total value: {self.total_value}",
            f"Fill: {self.fill_percentage:.1f}%",
        ]
        group_names = ", ".join(group.value for group in self.product_groups)
        if self.has_mixed_groups:
            lines.append(f"WARNING: mixed product groups: {group_names}")
        else:
            lines.append(f"Product group: {group_names or '-'}")
        return "\n".join(lines)


@dataclass(frozen=True)
class PalletView:
    """
    Derived values of one pallet.

    Attributes:
        number: Position of the pallet within its order, starting at 1
        lines: Pallet items in placement order
        capacity: Pallet capacity the fill percentage is measured against
        order_number: Number of the owning order, if known
        pallet_id: Database id, None for a pallet that is not persisted
    """

    number: int
    lines: tuple[PalletLine, ...]
    capacity: Decimal
    order_number: str | None = None
    pallet_id: int | None = None

    @property
    def items_count(self) -> int:
        return len(self.lines)

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_value(self) -> Decimal:
        return sum((line.total_price for line in self.lines), Decimal(0))

    @property
    def total_load(self) -> Decimal:
        return sum((line.load for line in self.lines), Decimal(0))

    @property
    def fill_percentage(self) -> Decimal:
        if self.is_empty or self.capacity <= 0:
            return Decimal(0)
        return min(HUNDRED, self.total_load / self.capacity * HUNDRED)

    @property
    def product_groups(self) -> tuple[ProductGroupName, ...]:
        """Distinct groups on the pallet, in placement order."""
        groups: list[ProductGroupName] = []
        for line in self.lines:
            if line.group is not None and line.group not in groups:
                groups.append(line.group)
        return tuple(groups)

    @property
    def has_mixed_groups(self) -> bool:
        return len(self.product_groups) > 1

    @property
    def primary_group(self) -> ProductGroupName | None:
        groups = self.product_groups
        return groups[0] if groups else None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def is_full(self) -> bool:
        return self.fill_percentage >= HUNDRED

    @property
    def status(self) -> PalletStatus:
        if self.is_empty:
            return PalletStatus.EMPTY
        return classify_fill(self.fill_percentage)

    def summary(self) -> str:
        return (
            f"Pallet No. {self.number}: {self.items_count} items, "
            f"{self.total_quantity} pcs, {self.fill_percentage:.1f}% filled"
        )

    def packing_slip(self) -> PackingSlip:
        return PackingSlip(
            pallet_number=self.number,
            order_number=self.order_number,
            items_count=self.items_count,
            total_quantity=self.total_quantity,
            total_value=self.total_value,
            fill_percentage=self.fill_percentage,
            product_groups=self.product_groups,
        )


def plan_views(plan: PackingPlan, order: PackingOrder) -> list[PalletView]:
    """
    Views of the pallets of a plan, numbered as in the plan.

    Pallet items whose order item is not part of ``order`` are skipped.
    """
    views = []
    for number, pallet in plan.numbered_pallets():
        lines = []
        for item in pallet.items:
            order_line = order.line(item.order_item_id)
            if order_line is None:
                continue
            lines.append(
                PalletLine(
                    order_item_id=item.order_item_id,
                    quantity=item.quantity,
                    unit_price=order_line.unit_price,
                    packing_coefficient=order_line.packing_coefficient,
                    group=order_line.group,
                )
            )
        views.append(
            PalletView(
                number=number,
                lines=tuple(lines),
                capacity=plan.capacity,
                order_number=order.number or None,
            )
        )
    return views
