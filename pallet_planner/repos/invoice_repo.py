"""
Repository functions for invoices.

An order has at most one invoice; the invoice is looked up by order id.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pallet_planner.core.errors import ConflictError
from pallet_planner.db.models import Invoice
from pallet_planner.repos.common import active_only

logger = logging.getLogger(__name__)


async def find_by_order_id(db: AsyncSession, order_id: int) -> Invoice | None:
    stmt = active_only(select(Invoice).where(Invoice.order_id == order_id), Invoice)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def find_by_number(db: AsyncSession, number: str) -> Invoice | None:
    stmt = active_only(
        select(Invoice).where(Invoice.number == number).order_by(Invoice.id), Invoice
    )
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def list_by_issue_date(db: AsyncSession, issue_date: date) -> list[Invoice]:
    stmt = active_only(
        select(Invoice).where(Invoice.issue_date == issue_date).order_by(Invoice.id), Invoice
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def has_invoice(db: AsyncSession, order_id: int) -> bool:
    stmt = select(
        exists().where(Invoice.order_id == order_id, Invoice.is_deleted.is_(False))
    )
    result = await db.execute(stmt)
    return bool(result.scalar())


async def create_invoice(
    db: AsyncSession,
    *,
    number: str,
    issue_date: date,
    order_id: int,
    counteragent_inn: str,
    amount: Decimal | None = None,
) -> Invoice:
    """
    Issue an invoice for an order.

    Raises:
        ConflictError: If the order already has an invoice, soft-deleted or not,
            or the invoice breaks another constraint (unknown order or counteragent)
    """
    existing = await db.execute(select(exists().where(Invoice.order_id == order_id)))
    if existing.scalar():
        raise ConflictError(
            "Order already has an invoice",
            details={"order_id": order_id},
        )

    invoice = Invoice(
        number=number,
        issue_date=issue_date,
        order_id=order_id,
        counteragent_inn=counteragent_inn,
        amount=amount,
    )

    try:
        db.add(invoice)
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            f"Invoice {number} could not be created for order {order_id}",
            details={"order_id": order_id, "error": str(e)},
        )

    logger.info(f"Created invoice {number} for order {order_id}")
    return invoice
