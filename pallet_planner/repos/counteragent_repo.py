"""Repository functions for counterparties."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pallet_planner.db.models import Counteragent
from pallet_planner.repos.common import active_only


async def find_by_inn(
    db: AsyncSession, inn: str, *, include_deleted: bool = False
) -> Counteragent | None:
    stmt = active_only(
        select(Counteragent).where(Counteragent.inn == inn), Counteragent, include_deleted
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def find_by_name(db: AsyncSession, name: str) -> Counteragent | None:
    """Names are not unique; the first match by tax id is returned."""
    stmt = active_only(
        select(Counteragent).where(Counteragent.name == name).order_by(Counteragent.inn),
        Counteragent,
    )
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()
