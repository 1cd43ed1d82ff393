"""
Catalog helpers over Product rows.

Turn ORM products into the ProductSnapshot the packer works with.
"""

from decimal import Decimal

from pallet_planner.db.models import Product
from pallet_planner.domain.enums import ProductGroupName
from pallet_planner.packing.plan import ProductSnapshot


def product_group(product: Product | None) -> ProductGroupName | None:
    """The product's material group, or None when it cannot be resolved."""
    if product is None or product.group is None or product.group.is_deleted:
        return None
    return ProductGroupName(product.group.name)


def validate_coefficient(product: Product | None) -> bool:
    """True when the product has a packing coefficient greater than 0."""
    if product is None or product.packing_coefficient is None:
        return False
    return Decimal(product.packing_coefficient) > 0


def to_snapshot(product: Product | None) -> ProductSnapshot | None:
    """
    Packer view of a product.

    A missing or soft-deleted product does not resolve.
    """
    if product is None or product.is_deleted:
        return None
    return ProductSnapshot(
        product_id=product.id,
        packing_coefficient=product.packing_coefficient,
        group=product_group(product),
        name=product.name,
    )
