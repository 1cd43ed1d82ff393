"""
Pallet packer.

Allocates the quantities of an order's items onto a sequence of pallets.
The packer is a pure function of (order, config): it performs no I/O and
gives identical plans for identical input.

Traversal order:
    1. product group, in PackerConfig.group_order
    2. quantity, descending
    3. order item id, ascending

For each item, the last open pallet that accepts the item's group and has
room for at least one unit is topped up; the rest of the item goes onto
freshly opened pallets. A pallet closes once its residual capacity is below
the smallest coefficient still to be packed in a compatible group, and a
closed pallet is never reopened.

Items that cannot be placed are reported as remainders, never raised:
    OVERSIZED            one unit is larger than a pallet
    INVALID_COEFFICIENT  coefficient missing, zero or negative
    NO_GROUP_SPACE       the group is not packable in this run, or the
                         pallet limit is reached
"""

import logging
from decimal import Decimal

from pallet_planner.domain.enums import ProductGroupName, RemainderReason
from pallet_planner.packing.config import PackerConfig
from pallet_planner.packing.plan import (
    PackingLine,
    PackingOrder,
    PackingPlan,
    PlannedPallet,
    PlannedPalletItem,
    Remainder,
)
from pallet_planner.packing.validator import validate_packing_input

logger = logging.getLogger(__name__)


class PalletLoad:
    """
    A pallet while it is being filled.

    Adding an order item that is already on the pallet merges into the
    existing entry instead of creating a second one.
    """

    def __init__(self, capacity: Decimal) -> None:
        self.capacity = capacity
        self.used = Decimal(0)
        self.closed = False
        self._quantities: dict[int, int] = {}
        self._product_ids: dict[int, int] = {}
        self._groups: list[ProductGroupName] = []

    @property
    def residual(self) -> Decimal:
        return self.capacity - self.used

    @property
    def groups(self) -> tuple[ProductGroupName, ...]:
        return tuple(self._groups)

    @property
    def is_empty(self) -> bool:
        return not self._quantities

    def accepts(self, group: ProductGroupName, allow_mixed_groups: bool) -> bool:
        if self.closed:
            return False
        return allow_mixed_groups or not self._groups or self._groups == [group]

    def fits(self, coefficient: Decimal) -> int:
        """Whole units of the given coefficient that still fit."""
        return int(self.residual // coefficient)

    def add(self, line: PackingLine, quantity: int) -> None:
        coefficient = line.packing_coefficient
        if self.closed:
            raise RuntimeError("Cannot add to a closed pallet")
        if coefficient is None or coefficient <= 0:
            raise ValueError(f"Order item {line.order_item_id} has no usable coefficient")
        if quantity <= 0 or quantity > self.fits(coefficient):
            raise ValueError(
                f"Cannot place {quantity} units of order item {line.order_item_id} "
                f"(residual {self.residual})"
            )

        if line.order_item_id in self._quantities:
            self._quantities[line.order_item_id] += quantity
        else:
            self._quantities[line.order_item_id] = quantity
            self._product_ids[line.order_item_id] = line.product_id

        if line.group is not None and line.group not in self._groups:
            self._groups.append(line.group)
        self.used += coefficient * quantity

    def close(self) -> None:
        self.closed = True

    def freeze(self) -> PlannedPallet:
        return PlannedPallet(
            items=tuple(
                PlannedPalletItem(
                    order_item_id=order_item_id,
                    product_id=self._product_ids[order_item_id],
                    quantity=quantity,
                )
                for order_item_id, quantity in self._quantities.items()
            ),
            load=self.used,
            groups=self.groups,
        )


def _classify(line: PackingLine, config: PackerConfig) -> RemainderReason | None:
    """Reason the line cannot be packed at all, or None if it can."""
    coefficient = line.packing_coefficient
    if coefficient is None or coefficient <= 0:
        return RemainderReason.INVALID_COEFFICIENT
    if coefficient > config.capacity:
        return RemainderReason.OVERSIZED
    if line.group is None or line.group not in config.group_order:
        return RemainderReason.NO_GROUP_SPACE
    return None


def _traversal_key(line: PackingLine, config: PackerConfig) -> tuple[int, int, int]:
    return (config.group_rank(line.group), -line.quantity, line.order_item_id)


_Minimums = tuple[dict[ProductGroupName, Decimal], Decimal | None]


def _suffix_minimums(lines: list[PackingLine]) -> list[_Minimums]:
    """
    For each position i, the smallest coefficient among lines[i + 1:],
    per group and overall.
    """
    result: list[_Minimums] = [({}, None)] * len(lines)
    by_group: dict[ProductGroupName, Decimal] = {}
    overall: Decimal | None = None
    for index in range(len(lines) - 1, -1, -1):
        result[index] = (dict(by_group), overall)
        line = lines[index]
        coefficient = line.packing_coefficient
        group = line.group
        if group not in by_group or coefficient < by_group[group]:
            by_group[group] = coefficient
        if overall is None or coefficient < overall:
            overall = coefficient
    return result


class Packer:
    """Stateful runner for a single packing of one order."""

    def __init__(self, order: PackingOrder, config: PackerConfig) -> None:
        self.order = order
        self.config = config
        self.capacity = config.capacity
        self.pallets: list[PalletLoad] = []
        self.remainders: list[Remainder] = []

    def run(self) -> PackingPlan:
        packable: list[PackingLine] = []
        for line in sorted(self.order.lines, key=lambda ln: _traversal_key(ln, self.config)):
            if line.quantity == 0:
                continue
            reason = _classify(line, self.config)
            if reason is None:
                packable.append(line)
            else:
                self._leave(line, line.quantity, reason)

        upcoming = _suffix_minimums(packable)
        for index, line in enumerate(packable):
            self._place(line)
            self._close_exhausted(*upcoming[index])

        for pallet in self.pallets:
            pallet.close()

        return PackingPlan(
            order_id=self.order.order_id,
            capacity=self.capacity,
            pallets=tuple(pallet.freeze() for pallet in self.pallets if not pallet.is_empty),
            remainders=tuple(self.remainders),
            allow_mixed_groups=self.config.allow_mixed_groups,
        )

    def _place(self, line: PackingLine) -> None:
        coefficient = line.packing_coefficient
        remaining = line.quantity

        pallet = self._find_open_pallet(line) or self._open_pallet()
        while pallet is not None:
            fit = min(remaining, pallet.fits(coefficient))
            pallet.add(line, fit)
            remaining -= fit
            if remaining == 0:
                return
            pallet = self._open_pallet()

        self._leave(line, remaining, RemainderReason.NO_GROUP_SPACE)

    def _find_open_pallet(self, line: PackingLine) -> PalletLoad | None:
        for pallet in reversed(self.pallets):
            if pallet.accepts(line.group, self.config.allow_mixed_groups) and pallet.fits(
                line.packing_coefficient
            ):
                return pallet
        return None

    def _open_pallet(self) -> PalletLoad | None:
        if self.config.max_pallets is not None and len(self.pallets) >= self.config.max_pallets:
            return None
        pallet = PalletLoad(self.capacity)
        self.pallets.append(pallet)
        return pallet

    def _close_exhausted(
        self, by_group: dict[ProductGroupName, Decimal], overall: Decimal | None
    ) -> None:
        for pallet in self.pallets:
            if pallet.closed:
                continue
            if self.config.allow_mixed_groups:
                smallest = overall
            else:
                smallest = by_group.get(pallet.groups[0]) if pallet.groups else overall
            if smallest is None or pallet.residual < smallest:
                pallet.close()

    def _leave(self, line: PackingLine, quantity: int, reason: RemainderReason) -> None:
        logger.warning(
            f"Order item {line.order_item_id}: {quantity} units left unplaced ({reason.value})",
            extra={
                "order_item_id": line.order_item_id,
                "quantity": quantity,
                "reason": reason.value,
            },
        )
        self.remainders.append(
            Remainder(order_item_id=line.order_item_id, quantity=quantity, reason=reason)
        )


def pack(order: PackingOrder, config: PackerConfig | None = None) -> PackingPlan:
    """
    Pack an order onto pallets.

    Args:
        order: Order with its lines and product snapshots
        config: Packer configuration (defaults apply when omitted)

    Returns:
        PackingPlan with pallets in creation order and the remainders

    Raises:
        PackingInputError: If the input is unusable (missing product,
            negative quantity or unit price, non-positive capacity)
    """
    config = config or PackerConfig()
    validate_packing_input(order, config)

    logger.info(
        f"Packing order {order.order_id} ({len(order.lines)} items)",
        extra={"capacity": str(config.capacity), "allow_mixed_groups": config.allow_mixed_groups},
    )
    plan = Packer(order, config).run()
    logger.info(
        f"Packed order {order.order_id} onto {len(plan.pallets)} pallets "
        f"with {len(plan.remainders)} remainders"
    )
    return plan
