"""
Common repository functions shared across multiple repos.

All functions are async - use AsyncSession from SQLAlchemy.
"""

import logging
from typing import Any, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from pallet_planner.db.models import SoftDeleteMixin

__all__ = [
    "active_only",
    "soft_delete_entity",
    "restore_entity",
]

logger = logging.getLogger(__name__)

_S = TypeVar("_S", bound=Select[Any])
_E = TypeVar("_E", bound=SoftDeleteMixin)


def active_only(stmt: _S, model: type[SoftDeleteMixin], include_deleted: bool = False) -> _S:
    """Restrict a select to rows that are not soft-deleted.

    Args:
        stmt: Select statement over ``model``
        model: Mapped class carrying SoftDeleteMixin
        include_deleted: Return the statement unchanged when True
    """
    if include_deleted:
        return stmt
    return stmt.where(model.is_deleted.is_(False))


async def soft_delete_entity(db: AsyncSession, entity: _E) -> _E:
    """Mark an entity as deleted and flush the change.

    The row stays in the database; reads skip it unless asked otherwise.
    """
    entity.soft_delete()
    await db.flush()
    logger.info(f"Soft-deleted {entity!r}")
    return entity


async def restore_entity(db: AsyncSession, entity: _E) -> _E:
    """Undo a soft delete and flush the change."""
    entity.restore()
    await db.flush()
    logger.info(f"Restored {entity!r}")
    return entity
