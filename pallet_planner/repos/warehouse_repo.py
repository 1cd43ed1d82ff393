"""Repository functions for delivery warehouses."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pallet_planner.db.models import Warehouse
from pallet_planner.repos.common import active_only


async def find_by_gln(
    db: AsyncSession, gln: str, *, include_deleted: bool = False
) -> Warehouse | None:
    stmt = active_only(select(Warehouse).where(Warehouse.gln == gln), Warehouse, include_deleted)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_by_region(db: AsyncSession, region: str) -> list[Warehouse]:
    stmt = active_only(
        select(Warehouse).where(Warehouse.region == region).order_by(Warehouse.gln), Warehouse
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
