"""
Pytest configuration and shared fixtures.

Provides:
- In-memory SQLite database (aiosqlite + StaticPool), schema created per test
- Async session factory and SqlPackingStore bound to that database
- Reference data (counteragent, warehouse, the three product groups)
- make_order: factory persisting an order with one product per line
- Builders for packer input records that need no database

Async Fixtures follow the AnyIO pytest plugin; mark tests with
@pytest.mark.anyio.
"""

from __future__ import annotations

import itertools
import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

# Add the package to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time; pin them before importing the package
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")

import pytest  # noqa: E402 (import after path setup)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from pallet_planner.core.db import create_fresh_async_engine, make_sessionmaker  # noqa: E402
from pallet_planner.db.models import (  # noqa: E402
    Base,
    Counteragent,
    Order,
    OrderItem,
    Product,
    ProductGroup,
    Warehouse,
)
from pallet_planner.domain.enums import ProductGroupName  # noqa: E402
from pallet_planner.packing.plan import (  # noqa: E402
    PackingLine,
    PackingOrder,
    ProductSnapshot,
)
from pallet_planner.services.packing_store import SqlPackingStore  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_INN = "7701234567"
TEST_GLN = "4601234567890"
TEST_REGION = "Moscow"
ORDER_DATE = date(2024, 3, 1)
DELIVERY_DATE = date(2024, 3, 10)


# =============================================================================
# Packer input builders (no database)
# =============================================================================


def packing_line(
    order_item_id: int,
    quantity: int,
    coefficient: Any,
    group: ProductGroupName | str | None = ProductGroupName.PLASTIC,
    unit_price: Any = "1.00",
    product_id: int | None = None,
) -> PackingLine:
    """Build a packing line whose product is resolved."""
    product_id = product_id or 1000 + order_item_id
    return PackingLine(
        order_item_id=order_item_id,
        product_id=product_id,
        quantity=quantity,
        unit_price=Decimal(str(unit_price)),
        product=ProductSnapshot(
            product_id=product_id,
            packing_coefficient=None if coefficient is None else Decimal(str(coefficient)),
            group=group,
        ),
    )


def packing_order(*lines: PackingLine, order_id: int = 1, number: str = "ORD-1") -> PackingOrder:
    return PackingOrder(order_id=order_id, number=number, lines=tuple(lines))


# =============================================================================
# Async SQLAlchemy Fixtures
# =============================================================================


# Per AnyIO testing docs: https://anyio.readthedocs.io/en/stable/testing.html
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Fresh in-memory database with the full schema.

    StaticPool keeps the single connection (and with it the database)
    alive for the whole test.
    """
    engine = create_fresh_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_sessionmaker(async_engine)


@pytest.fixture
async def async_db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SqlPackingStore:
    return SqlPackingStore(session_factory)


@pytest.fixture
async def reference_data(
    session_factory: async_sessionmaker[AsyncSession],
) -> dict[ProductGroupName, int]:
    """
    Counteragent, warehouse and the product groups.

    Returns:
        Product group id by group name
    """
    async with session_factory() as db, db.begin():
        db.add(Counteragent(inn=TEST_INN, name="Tehnoplast Trading LLC"))
        db.add(
            Warehouse(
                gln=TEST_GLN, address="1 Warehouse Lane", region=TEST_REGION, short_name="DC-1"
            )
        )
        groups = [ProductGroup(name=name) for name in ProductGroupName]
        db.add_all(groups)
    return {group.name: group.id for group in groups}


OrderFactory = Callable[..., Awaitable[tuple[int, list[int]]]]


@pytest.fixture
def make_order(
    session_factory: async_sessionmaker[AsyncSession],
    reference_data: dict[ProductGroupName, int],
) -> OrderFactory:
    """
    Persist an order with one new product per line.

    Each line is a dict with ``quantity`` and optional ``coefficient``
    (None for an unmeasured product), ``group`` and ``unit_price``.

    Returns:
        Async factory returning (order id, order item ids in line order)
    """
    sequence = itertools.count(1)

    async def _make(
        lines: list[dict[str, Any]],
        *,
        number: str | None = None,
        order_date: date = ORDER_DATE,
        delivery_date: date = DELIVERY_DATE,
    ) -> tuple[int, list[int]]:
        order_number = next(sequence)
        async with session_factory() as db, db.begin():
            order = Order(
                number=number or f"ORD-{order_number}",
                order_date=order_date,
                delivery_date=delivery_date,
                counteragent_inn=TEST_INN,
                warehouse_gln=TEST_GLN,
            )
            for line in lines:
                n = next(sequence)
                group = ProductGroupName(line.get("group", ProductGroupName.PLASTIC))
                coefficient = line.get("coefficient", Decimal("1"))
                product = Product(
                    name=line.get("name", f"Product {n}"),
                    internal_barcode=f"IB{n:08d}",
                    internal_sku=f"SKU-{n}",
                    external_barcode=line.get("external_barcode"),
                    external_sku=line.get("external_sku"),
                    packing_coefficient=None if coefficient is None else Decimal(str(coefficient)),
                    group_id=reference_data[group],
                )
                order.items.append(
                    OrderItem(
                        product=product,
                        quantity=line["quantity"],
                        unit_price=Decimal(str(line.get("unit_price", "1.00"))),
                    )
                )
            db.add(order)
        return order.id, [item.id for item in order.items]

    return _make
