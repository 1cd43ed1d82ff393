"""
Domain enums matching the database enumerations.

These enums provide type-safe representations of the fixed value sets
used by the catalog, the order book and the packer.
"""

from enum import Enum


class ProductGroupName(str, Enum):
    """Material family of a product - matches product_groups.name."""

    PLASTIC = "plastic"
    METAL = "metal"
    HDPE = "HDPE"


DEFAULT_GROUP_ORDER: tuple[ProductGroupName, ...] = (
    ProductGroupName.PLASTIC,
    ProductGroupName.METAL,
    ProductGroupName.HDPE,
)


class RemainderReason(str, Enum):
    """
    Why the packer left quantity of an order item unplaced.

    MISSING_PRODUCT is never attached to a remainder: it aborts the run.
    """

    OVERSIZED = "OVERSIZED"  # One unit exceeds the pallet capacity
    INVALID_COEFFICIENT = "INVALID_COEFFICIENT"  # Coefficient missing or <= 0
    NO_GROUP_SPACE = "NO_GROUP_SPACE"  # No pallet may take the item's group
    MISSING_PRODUCT = "MISSING_PRODUCT"


class OrderStatus(str, Enum):
    """Order status, in order of precedence."""

    OVERDUE = "Overdue"
    INVOICED = "Invoiced"
    URGENT = "Urgent"
    IN_PROGRESS = "InProgress"


class PalletStatus(str, Enum):
    """Fill status label of a pallet."""

    EMPTY = "Empty"
    LOW_FILL = "LowFill"
    PARTIALLY_FILLED = "PartiallyFilled"
    NEARLY_FULL = "NearlyFull"
    FULL = "Full"


class PackingStatus(str, Enum):
    """How much of an order item has been placed on pallets."""

    NOT_PACKED = "NOT_PACKED"
    PARTIALLY_PACKED = "PARTIALLY_PACKED"
    FULLY_PACKED = "FULLY_PACKED"


class CounteragentType(str, Enum):
    """
    Kind of counterparty, derived from the tax id length.

    10 digits identify a legal entity, 12 digits a sole proprietor.
    """

    LEGAL_ENTITY = "LEGAL_ENTITY"
    SOLE_PROPRIETOR = "SOLE_PROPRIETOR"
    INVALID = "INVALID"
