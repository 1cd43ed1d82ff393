"""
Tests for the order book: order lookups, derived totals, status and packing progress.
"""

from datetime import date
from decimal import Decimal

import pytest

from pallet_planner.core.errors import ConflictError, NotFoundError
from pallet_planner.domain.enums import (
    CounteragentType,
    OrderStatus,
    PackingStatus,
    ProductGroupName,
)
from pallet_planner.packing.config import PackerConfig
from pallet_planner.repos import invoice_repo, order_repo
from pallet_planner.repos.common import soft_delete_entity
from pallet_planner.services import order_book
from pallet_planner.services.counterparties import counteragent_type, short_name
from pallet_planner.services.packing_service import repack_order
from tests.conftest import DELIVERY_DATE, TEST_INN, TEST_REGION

TODAY = date(2024, 3, 10)


class TestClassifyOrderStatus:
    @pytest.mark.parametrize(
        ("delivery_date", "has_invoice", "expected"),
        [
            (date(2024, 3, 9), False, OrderStatus.OVERDUE),
            (date(2024, 3, 9), True, OrderStatus.OVERDUE),
            (date(2024, 3, 10), True, OrderStatus.INVOICED),
            (date(2024, 3, 30), True, OrderStatus.INVOICED),
            (date(2024, 3, 10), False, OrderStatus.URGENT),
            (date(2024, 3, 13), False, OrderStatus.URGENT),
            (date(2024, 3, 14), False, OrderStatus.IN_PROGRESS),
        ],
    )
    def test_precedence(self, delivery_date, has_invoice, expected):
        """Test Overdue > Invoiced > Urgent > InProgress."""
        assert order_book.classify_order_status(delivery_date, has_invoice, TODAY) == expected

    def test_today_defaults_to_current_date(self):
        assert order_book.classify_order_status(date(2000, 1, 1), False) == OrderStatus.OVERDUE


class TestOrderTotals:
    @pytest.mark.anyio
    async def test_totals(self, async_db_session, make_order):
        order_id, _ = await make_order(
            [
                {"quantity": 3, "unit_price": "2.50"},
                {"quantity": 2, "unit_price": "10.00"},
            ]
        )

        order = await order_repo.get_order(async_db_session, order_id)

        assert order_book.total_amount(order) == Decimal("27.50")
        assert order_book.total_quantity(order) == 5
        assert order_book.items_count(order) == 2

    @pytest.mark.anyio
    async def test_days_to_delivery(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}])
        order = await order_repo.get_order(async_db_session, order_id)

        assert order_book.days_to_delivery(order, today=date(2024, 3, 1)) == 9
        assert order_book.days_to_delivery(order, today=date(2024, 3, 12)) == -2

    @pytest.mark.anyio
    async def test_order_status_sees_invoice(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}], delivery_date=date(2024, 3, 20))
        order = await order_repo.get_order(async_db_session, order_id)
        assert await order_book.order_status(async_db_session, order, TODAY) == (
            OrderStatus.IN_PROGRESS
        )

        await invoice_repo.create_invoice(
            async_db_session,
            number="INV-1",
            issue_date=TODAY,
            order_id=order_id,
            counteragent_inn=TEST_INN,
        )

        assert await order_book.order_status(async_db_session, order, TODAY) == (
            OrderStatus.INVOICED
        )


class TestOrderLookups:
    @pytest.mark.anyio
    async def test_get_order_not_found(self, async_db_session, reference_data):
        with pytest.raises(NotFoundError):
            await order_repo.get_order(async_db_session, 12345)

    @pytest.mark.anyio
    async def test_get_order_by_number(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}], number="A-17")

        found = await order_repo.get_order_by_number(async_db_session, "A-17")

        assert found.id == order_id
        assert await order_repo.get_order_by_number(async_db_session, "missing") is None

    @pytest.mark.anyio
    async def test_items_are_loaded_with_products(self, async_db_session, make_order):
        order_id, item_ids = await make_order(
            [{"quantity": 1, "group": ProductGroupName.HDPE}, {"quantity": 2}]
        )

        order = await order_repo.get_order(async_db_session, order_id)

        assert [item.id for item in order.items] == item_ids
        assert order.items[0].product.group.name == ProductGroupName.HDPE

    @pytest.mark.anyio
    async def test_by_delivery_date_and_region(self, async_db_session, make_order):
        due, _ = await make_order([{"quantity": 1}])
        await make_order([{"quantity": 1}], delivery_date=date(2024, 4, 1))

        by_date = await order_repo.list_orders_by_delivery_date(async_db_session, DELIVERY_DATE)
        in_region = await order_repo.list_orders_by_delivery_date_and_region(
            async_db_session, DELIVERY_DATE, TEST_REGION
        )
        elsewhere = await order_repo.list_orders_by_delivery_date_and_region(
            async_db_session, DELIVERY_DATE, "Kazan"
        )

        assert [order.id for order in by_date] == [due]
        assert [order.id for order in in_region] == [due]
        assert elsewhere == []

    @pytest.mark.anyio
    async def test_list_order_items(self, async_db_session, make_order):
        order_id, item_ids = await make_order([{"quantity": 1}, {"quantity": 4}])

        items = await order_repo.list_order_items(async_db_session, order_id)

        assert [item.id for item in items] == item_ids
        assert items[1].total_price == Decimal("4.00")


class TestInvoices:
    @pytest.mark.anyio
    async def test_second_invoice_conflicts(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}])
        await invoice_repo.create_invoice(
            async_db_session,
            number="INV-1",
            issue_date=TODAY,
            order_id=order_id,
            counteragent_inn=TEST_INN,
        )

        with pytest.raises(ConflictError, match="already has an invoice"):
            await invoice_repo.create_invoice(
                async_db_session,
                number="INV-2",
                issue_date=TODAY,
                order_id=order_id,
                counteragent_inn=TEST_INN,
            )

    @pytest.mark.anyio
    async def test_soft_deleted_invoice_still_blocks_a_new_one(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}])
        invoice = await invoice_repo.create_invoice(
            async_db_session,
            number="INV-1",
            issue_date=TODAY,
            order_id=order_id,
            counteragent_inn=TEST_INN,
        )
        await soft_delete_entity(async_db_session, invoice)

        assert not await invoice_repo.has_invoice(async_db_session, order_id)
        with pytest.raises(ConflictError, match="already has an invoice"):
            await invoice_repo.create_invoice(
                async_db_session,
                number="INV-2",
                issue_date=TODAY,
                order_id=order_id,
                counteragent_inn=TEST_INN,
            )

    @pytest.mark.anyio
    async def test_unknown_counteragent_is_not_reported_as_duplicate(
        self, async_db_session, make_order
    ):
        order_id, _ = await make_order([{"quantity": 1}])

        with pytest.raises(ConflictError, match="could not be created") as exc_info:
            await invoice_repo.create_invoice(
                async_db_session,
                number="INV-1",
                issue_date=TODAY,
                order_id=order_id,
                counteragent_inn="0000000000",
            )

        assert exc_info.value.details["order_id"] == order_id

    @pytest.mark.anyio
    async def test_invoice_lookups(self, async_db_session, make_order):
        order_id, _ = await make_order([{"quantity": 1}])
        await invoice_repo.create_invoice(
            async_db_session,
            number="INV-7",
            issue_date=TODAY,
            order_id=order_id,
            counteragent_inn=TEST_INN,
            amount=Decimal("1.00"),
        )

        assert (await invoice_repo.find_by_order_id(async_db_session, order_id)).number == "INV-7"
        assert (await invoice_repo.find_by_number(async_db_session, "INV-7")).order_id == order_id
        assert len(await invoice_repo.list_by_issue_date(async_db_session, TODAY)) == 1
        assert await invoice_repo.has_invoice(async_db_session, order_id)
        assert await invoice_repo.find_by_number(async_db_session, "INV-8") is None


class TestItemPackingProgress:
    @pytest.mark.anyio
    async def test_progress_after_partial_packing(self, store, async_db_session, make_order):
        order_id, (partial, unpacked, oversized) = await make_order(
            [
                {"quantity": 30, "coefficient": 4},
                {"quantity": 5, "coefficient": 1, "group": ProductGroupName.METAL},
                {"quantity": 1, "coefficient": 150},
            ]
        )
        await repack_order(store, order_id, PackerConfig(max_pallets=1))

        order = await order_repo.get_order(async_db_session, order_id)
        progress = await order_book.order_item_packing(async_db_session, order)

        assert progress[partial].quantity_on_pallets == 25
        assert progress[partial].remaining_quantity == 5
        assert progress[partial].packing_status == PackingStatus.PARTIALLY_PACKED
        assert progress[partial].packing_percentage.quantize(Decimal("0.1")) == Decimal("83.3")
        assert progress[unpacked].packing_status == PackingStatus.NOT_PACKED
        assert progress[unpacked].packing_percentage == Decimal("0")
        assert progress[oversized].packing_status == PackingStatus.NOT_PACKED

    @pytest.mark.anyio
    async def test_fully_packed(self, store, async_db_session, make_order):
        order_id, (item_id,) = await make_order([{"quantity": 10, "coefficient": 5}])
        await repack_order(store, order_id, PackerConfig())

        order = await order_repo.get_order(async_db_session, order_id)
        progress = await order_book.order_item_packing(async_db_session, order)

        assert progress[item_id].packing_status == PackingStatus.FULLY_PACKED
        assert progress[item_id].packing_percentage == Decimal("100")


class TestCounterparties:
    @pytest.mark.parametrize(
        ("tax_id", "expected"),
        [
            ("7701234567", CounteragentType.LEGAL_ENTITY),
            ("770123456789", CounteragentType.SOLE_PROPRIETOR),
            ("77012345", CounteragentType.INVALID),
            ("77012345AB", CounteragentType.INVALID),
            ("", CounteragentType.INVALID),
            (None, CounteragentType.INVALID),
        ],
    )
    def test_counteragent_type(self, tax_id, expected):
        assert counteragent_type(tax_id) == expected

    def test_short_name(self):
        assert short_name("Tehnoplast") == "Tehnoplast"
        assert short_name("x" * 50) == "x" * 50
        assert short_name("x" * 51) == "x" * 47 + "..."
        assert short_name(None) == ""
