"""
Repository functions for the product catalog.

Lookups return None on a miss; catalog reads never raise. Soft-deleted
rows are skipped unless include_deleted=True is passed.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pallet_planner.db.models import Product, ProductGroup
from pallet_planner.domain.enums import ProductGroupName
from pallet_planner.repos.common import active_only

logger = logging.getLogger(__name__)


async def _first_product(
    db: AsyncSession, condition: Any, *, include_deleted: bool = False
) -> Product | None:
    stmt = (
        select(Product)
        .options(selectinload(Product.group))
        .where(condition)
        .order_by(Product.id)
        .limit(1)
    )
    stmt = active_only(stmt, Product, include_deleted)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_product(
    db: AsyncSession, product_id: int, *, include_deleted: bool = False
) -> Product | None:
    return await _first_product(db, Product.id == product_id, include_deleted=include_deleted)


async def find_by_internal_sku(
    db: AsyncSession, sku: str, *, include_deleted: bool = False
) -> Product | None:
    return await _first_product(db, Product.internal_sku == sku, include_deleted=include_deleted)


async def find_by_internal_barcode(
    db: AsyncSession, barcode: str, *, include_deleted: bool = False
) -> Product | None:
    return await _first_product(
        db, Product.internal_barcode == barcode, include_deleted=include_deleted
    )


async def find_by_external_sku(
    db: AsyncSession, sku: str, *, include_deleted: bool = False
) -> Product | None:
    """External codes are not unique; the oldest matching product wins."""
    return await _first_product(db, Product.external_sku == sku, include_deleted=include_deleted)


async def find_by_external_barcode(
    db: AsyncSession, barcode: str, *, include_deleted: bool = False
) -> Product | None:
    return await _first_product(
        db, Product.external_barcode == barcode, include_deleted=include_deleted
    )


async def find_by_name(
    db: AsyncSession, name: str, *, include_deleted: bool = False
) -> Product | None:
    return await _first_product(db, Product.name == name, include_deleted=include_deleted)


async def list_products_by_group(
    db: AsyncSession, group: ProductGroupName, *, include_deleted: bool = False
) -> list[Product]:
    """Products of one group, ordered by id."""
    stmt = (
        select(Product)
        .join(ProductGroup, Product.group_id == ProductGroup.id)
        .options(selectinload(Product.group))
        .where(ProductGroup.name == ProductGroupName(group))
        .order_by(Product.id)
    )
    stmt = active_only(stmt, Product, include_deleted)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_product_group(
    db: AsyncSession, group_id: int, *, include_deleted: bool = False
) -> ProductGroup | None:
    stmt = active_only(
        select(ProductGroup).where(ProductGroup.id == group_id), ProductGroup, include_deleted
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def find_product_group_by_name(
    db: AsyncSession, name: str, *, include_deleted: bool = False
) -> ProductGroup | None:
    """Look up a group by its name; names outside the enumeration simply miss."""
    try:
        group_name = ProductGroupName(name)
    except ValueError:
        logger.debug(f"Unknown product group name '{name}'")
        return None

    stmt = active_only(
        select(ProductGroup).where(ProductGroup.name == group_name), ProductGroup, include_deleted
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_product_groups(db: AsyncSession) -> list[ProductGroup]:
    stmt = active_only(select(ProductGroup).order_by(ProductGroup.id), ProductGroup)
    result = await db.execute(stmt)
    return list(result.scalars().all())
