"""
Tests for catalog lookups and the catalog helpers.

Catalog reads return None on a miss and skip soft-deleted rows unless
include_deleted=True is passed.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from pallet_planner.db.models import Product, ProductGroup
from pallet_planner.domain.enums import ProductGroupName
from pallet_planner.repos import catalog_repo, counteragent_repo, warehouse_repo
from pallet_planner.repos.common import restore_entity, soft_delete_entity
from pallet_planner.services.catalog import product_group, to_snapshot, validate_coefficient
from tests.conftest import TEST_GLN, TEST_INN, TEST_REGION


@pytest.fixture
async def catalog(async_db_session, reference_data):
    """Two plastic products and one metal product with known codes."""
    products = [
        Product(
            name="Bucket 10L",
            internal_barcode="4600000000011",
            internal_sku="BKT-10",
            external_barcode="EXT-BC-1",
            external_sku="EXT-SKU-1",
            packing_coefficient=Decimal("2.5"),
            group_id=reference_data[ProductGroupName.PLASTIC],
        ),
        Product(
            name="Lid 10L",
            internal_barcode="4600000000028",
            internal_sku="LID-10",
            packing_coefficient=None,
            group_id=reference_data[ProductGroupName.PLASTIC],
        ),
        Product(
            name="Handle",
            internal_barcode="4600000000035",
            internal_sku="HND-1",
            packing_coefficient=Decimal("0.25"),
            group_id=reference_data[ProductGroupName.METAL],
        ),
    ]
    async_db_session.add_all(products)
    await async_db_session.commit()
    return {product.internal_sku: product for product in products}


class TestProductLookups:
    @pytest.mark.anyio
    async def test_lookup_by_each_code(self, async_db_session, catalog):
        bucket = catalog["BKT-10"]

        assert (await catalog_repo.get_product(async_db_session, bucket.id)).id == bucket.id
        assert (await catalog_repo.find_by_internal_sku(async_db_session, "BKT-10")).id == bucket.id
        assert (
            await catalog_repo.find_by_internal_barcode(async_db_session, "4600000000011")
        ).id == bucket.id
        assert (await catalog_repo.find_by_external_sku(async_db_session, "EXT-SKU-1")).id == (
            bucket.id
        )
        assert (
            await catalog_repo.find_by_external_barcode(async_db_session, "EXT-BC-1")
        ).id == bucket.id
        assert (await catalog_repo.find_by_name(async_db_session, "Bucket 10L")).id == bucket.id

    @pytest.mark.anyio
    async def test_lookup_miss_returns_none(self, async_db_session, catalog):
        assert await catalog_repo.get_product(async_db_session, 9999) is None
        assert await catalog_repo.find_by_internal_sku(async_db_session, "NOPE") is None
        assert await catalog_repo.find_by_internal_barcode(async_db_session, "0") is None
        assert await catalog_repo.find_by_external_sku(async_db_session, "NOPE") is None
        assert await catalog_repo.find_by_external_barcode(async_db_session, "NOPE") is None
        assert await catalog_repo.find_by_name(async_db_session, "Nothing") is None

    @pytest.mark.anyio
    async def test_product_group_is_loaded(self, async_db_session, catalog):
        handle = await catalog_repo.find_by_internal_sku(async_db_session, "HND-1")

        assert handle.group.name == ProductGroupName.METAL

    @pytest.mark.anyio
    async def test_products_by_group(self, async_db_session, catalog):
        plastic = await catalog_repo.list_products_by_group(
            async_db_session, ProductGroupName.PLASTIC
        )

        assert [product.internal_sku for product in plastic] == ["BKT-10", "LID-10"]
        assert await catalog_repo.list_products_by_group(async_db_session, "HDPE") == []

    @pytest.mark.anyio
    async def test_soft_deleted_product_is_hidden(self, async_db_session, catalog):
        lid = catalog["LID-10"]

        await soft_delete_entity(async_db_session, lid)

        assert await catalog_repo.find_by_internal_sku(async_db_session, "LID-10") is None
        found = await catalog_repo.find_by_internal_sku(
            async_db_session, "LID-10", include_deleted=True
        )
        assert found.id == lid.id

        await restore_entity(async_db_session, lid)
        assert await catalog_repo.find_by_internal_sku(async_db_session, "LID-10") is not None

    @pytest.mark.anyio
    async def test_internal_sku_is_unique(self, async_db_session, catalog, reference_data):
        async_db_session.add(
            Product(
                name="Copy",
                internal_barcode="4600000000042",
                internal_sku="BKT-10",
                group_id=reference_data[ProductGroupName.PLASTIC],
            )
        )

        with pytest.raises(IntegrityError):
            await async_db_session.flush()


class TestProductGroupLookups:
    @pytest.mark.anyio
    async def test_find_group_by_name(self, async_db_session, reference_data):
        group = await catalog_repo.find_product_group_by_name(async_db_session, "HDPE")

        assert group.id == reference_data[ProductGroupName.HDPE]
        assert (await catalog_repo.get_product_group(async_db_session, group.id)).name == (
            ProductGroupName.HDPE
        )

    @pytest.mark.anyio
    async def test_unknown_group_name_misses(self, async_db_session, reference_data):
        assert await catalog_repo.find_product_group_by_name(async_db_session, "wood") is None

    @pytest.mark.anyio
    async def test_list_groups(self, async_db_session, reference_data):
        groups = await catalog_repo.list_product_groups(async_db_session)

        assert [group.name for group in groups] == list(ProductGroupName)


class TestReferenceDataLookups:
    @pytest.mark.anyio
    async def test_counteragent_lookups(self, async_db_session, reference_data):
        by_inn = await counteragent_repo.find_by_inn(async_db_session, TEST_INN)

        assert by_inn.name == "Tehnoplast Trading LLC"
        assert (await counteragent_repo.find_by_name(async_db_session, by_inn.name)).inn == TEST_INN
        assert await counteragent_repo.find_by_inn(async_db_session, "0000000000") is None

    @pytest.mark.anyio
    async def test_warehouse_lookups(self, async_db_session, reference_data):
        warehouse = await warehouse_repo.find_by_gln(async_db_session, TEST_GLN)

        assert warehouse.region == TEST_REGION
        in_region = await warehouse_repo.list_by_region(async_db_session, TEST_REGION)
        assert [w.gln for w in in_region] == [TEST_GLN]
        assert await warehouse_repo.find_by_gln(async_db_session, "0000000000000") is None


class TestCatalogHelpers:
    @pytest.mark.anyio
    async def test_snapshot_of_product(self, async_db_session, catalog):
        bucket = await catalog_repo.find_by_internal_sku(async_db_session, "BKT-10")

        snapshot = to_snapshot(bucket)

        assert snapshot.product_id == bucket.id
        assert snapshot.packing_coefficient == Decimal("2.5")
        assert snapshot.group == ProductGroupName.PLASTIC
        assert snapshot.name == "Bucket 10L"

    @pytest.mark.anyio
    async def test_validate_coefficient(self, async_db_session, catalog):
        bucket = await catalog_repo.find_by_internal_sku(async_db_session, "BKT-10")
        lid = await catalog_repo.find_by_internal_sku(async_db_session, "LID-10")

        assert validate_coefficient(bucket)
        assert not validate_coefficient(lid)
        assert not validate_coefficient(None)

    def test_missing_product(self):
        assert to_snapshot(None) is None
        assert product_group(None) is None

    def test_soft_deleted_product_does_not_resolve(self):
        product = Product(
            name="Gone",
            internal_barcode="1",
            internal_sku="GONE",
            packing_coefficient=Decimal("1"),
        )
        product.group = ProductGroup(name=ProductGroupName.METAL)
        product.soft_delete()

        assert to_snapshot(product) is None
        assert product_group(product) == ProductGroupName.METAL
