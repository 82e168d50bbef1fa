"""Contract tests run against every catalog repository implementation."""

from decimal import Decimal

import pytest

from product_locator.adapters.catalog_repository import FakeCatalogRepository
from product_locator.domain.errors import StoreNotFoundError
from product_locator.domain.model import Chain, Product, Store, StoreInventoryFact
from product_locator.search.filters import AnyOf, FieldContains, FieldEquals, build_candidate_filter
from product_locator.search.normalizer import analyze_query
from tests.fixtures.catalog import (
    APPLE_CORER,
    APPLE_JUICE,
    BANANAS,
    DOWNTOWN_STORE,
    GREEN_APPLES,
    GROCERY_CHAIN,
    HARDWARE_CHAIN,
    HARDWARE_STORE,
    PEANUT_BUTTER,
    RED_APPLES,
    WHOLE_MILK,
    catalog_kwargs,
)


def _load(repository, **snapshots):
    if isinstance(repository, FakeCatalogRepository):
        for chain in snapshots.get("chains", ()):
            repository.add_chain(chain)
        for store in snapshots.get("stores", ()):
            repository.add_store(store)
    else:
        repository.load(**snapshots)


@pytest.mark.unit
class TestCatalogRepositoryContract:
    @pytest.mark.asyncio
    async def test_resolve_store_chain(self, catalog_repository):
        assert await catalog_repository.resolve_store_chain(DOWNTOWN_STORE) == GROCERY_CHAIN
        assert await catalog_repository.resolve_store_chain(HARDWARE_STORE) == HARDWARE_CHAIN

    @pytest.mark.asyncio
    async def test_unknown_store_raises_not_found(self, catalog_repository):
        with pytest.raises(StoreNotFoundError) as exc_info:
            await catalog_repository.resolve_store_chain(999)

        assert exc_info.value.store_id == 999

    @pytest.mark.asyncio
    async def test_list_products_applies_filter(self, catalog_repository):
        products = await catalog_repository.list_products(GROCERY_CHAIN, FieldContains("name", "apple"))

        assert {product.id for product in products} == {RED_APPLES, GREEN_APPLES, APPLE_JUICE}

    @pytest.mark.asyncio
    async def test_list_products_is_chain_partitioned(self, catalog_repository):
        products = await catalog_repository.list_products(HARDWARE_CHAIN, FieldContains("name", "apple"))

        assert [product.id for product in products] == [APPLE_CORER]

    @pytest.mark.asyncio
    async def test_empty_any_of_matches_nothing(self, catalog_repository):
        assert await catalog_repository.list_products(GROCERY_CHAIN, AnyOf(())) == []

    @pytest.mark.asyncio
    async def test_filter_is_case_insensitive_on_stored_text(self, catalog_repository):
        products = await catalog_repository.list_products(GROCERY_CHAIN, FieldEquals("sku", "milk001"))

        assert [product.id for product in products] == [WHOLE_MILK]

    @pytest.mark.asyncio
    async def test_candidate_filter_matches_python_evaluation(self, catalog_repository):
        reference = FakeCatalogRepository(**catalog_kwargs())
        for text in ("apple", "APPL001", "red apples", "dairy", "banan", "peanut buter", "xyz-nonexistent"):
            expression = build_candidate_filter(analyze_query(text, DOWNTOWN_STORE))
            products = await catalog_repository.list_products(GROCERY_CHAIN, expression)
            expected = await reference.list_products(GROCERY_CHAIN, expression)
            assert sorted(product.id for product in products) == sorted(product.id for product in expected), text

    @pytest.mark.asyncio
    async def test_product_fields_round_trip(self, catalog_repository):
        (product,) = await catalog_repository.list_products(GROCERY_CHAIN, FieldEquals("sku", "appl001"))

        assert product.name == "Red Apples"
        assert product.base_price == Decimal("1.99")
        assert product.image_url == "https://img.example.com/red-apples.png"

    @pytest.mark.asyncio
    async def test_get_inventory_omits_missing_rows(self, catalog_repository):
        facts = await catalog_repository.get_inventory(DOWNTOWN_STORE, [RED_APPLES, APPLE_JUICE, BANANAS])

        by_product = {fact.product_id: fact for fact in facts}
        assert set(by_product) == {RED_APPLES, BANANAS}
        assert by_product[RED_APPLES].stock_quantity == 5
        assert by_product[RED_APPLES].aisle == "1"
        assert by_product[BANANAS].is_available is False

    @pytest.mark.asyncio
    async def test_get_inventory_empty_ids(self, catalog_repository):
        assert await catalog_repository.get_inventory(DOWNTOWN_STORE, []) == []

    @pytest.mark.asyncio
    async def test_get_store(self, catalog_repository):
        store = await catalog_repository.get_store(DOWNTOWN_STORE)

        assert store.name == "Downtown"
        assert store.city == "Springfield"
        assert store.chain_id == GROCERY_CHAIN

    @pytest.mark.asyncio
    async def test_get_unknown_store(self, catalog_repository):
        with pytest.raises(StoreNotFoundError):
            await catalog_repository.get_store(404)

    @pytest.mark.asyncio
    async def test_list_stores_active_sorted(self, catalog_repository):
        stores = await catalog_repository.list_stores(GROCERY_CHAIN)

        assert [store.name for store in stores] == ["Downtown", "Uptown"]

    @pytest.mark.asyncio
    async def test_list_chains_counts_active_stores(self, catalog_repository):
        chains = await catalog_repository.list_chains()

        assert [(chain.chain_id, chain.name, chain.store_count) for chain in chains] == [
            (GROCERY_CHAIN, "Fresh Grocers", 2),
            (HARDWARE_CHAIN, "Tool Depot", 1),
        ]

    @pytest.mark.asyncio
    async def test_chain_without_active_stores_listed_with_zero(self, catalog_repository):
        _load(catalog_repository, chains=[Chain(chain_id=9, name="Bayside Market")])
        _load(catalog_repository, stores=[Store(store_id=90, chain_id=9, name="Pier", is_active=False)])

        chains = await catalog_repository.list_chains()

        assert [(chain.name, chain.store_count) for chain in chains] == [
            ("Bayside Market", 0),
            ("Fresh Grocers", 2),
            ("Tool Depot", 1),
        ]

    @pytest.mark.asyncio
    async def test_list_active_stores_ordered_by_chain_then_store(self, catalog_repository):
        listings = await catalog_repository.list_active_stores()

        assert [(listing.chain_name, listing.store.name) for listing in listings] == [
            ("Fresh Grocers", "Downtown"),
            ("Fresh Grocers", "Uptown"),
            ("Tool Depot", "Hardware Central"),
        ]
        assert listings[2].store.store_id == HARDWARE_STORE

    @pytest.mark.asyncio
    async def test_browse_orders_by_name_and_pages(self, catalog_repository):
        first_page = await catalog_repository.browse_products(GROCERY_CHAIN, limit=3)
        second_page = await catalog_repository.browse_products(GROCERY_CHAIN, limit=3, offset=3)

        assert [product.name for product in first_page] == ["Apple Juice", "Chocolate Chip Cookies", "Green Apples"]
        assert [product.name for product in second_page] == ["Organic Bananas", "Peanut Butter", "Red Apples"]

    @pytest.mark.asyncio
    async def test_browse_by_category(self, catalog_repository):
        products = await catalog_repository.browse_products(GROCERY_CHAIN, category="Bakery")

        assert [product.name for product in products] == ["Chocolate Chip Cookies", "Sourdough Bread"]

    @pytest.mark.asyncio
    async def test_ping_reports_healthy(self, catalog_repository):
        status = await catalog_repository.ping()

        assert status["status"] == "healthy"
        assert status["products"] == 10


@pytest.mark.unit
class TestFakeCatalogRepository:
    def test_duplicate_sku_in_chain_rejected(self, fake_repository):
        duplicate = Product(id=500, chain_id=GROCERY_CHAIN, sku="appl001", name="Imposter")

        with pytest.raises(ValueError, match="Duplicate sku"):
            fake_repository.add_product(duplicate)

    def test_same_sku_allowed_across_chains(self, fake_repository):
        fake_repository.add_product(Product(id=501, chain_id=HARDWARE_CHAIN, sku="PNUT001", name="Peanut Gauge"))

    @pytest.mark.asyncio
    async def test_counts_list_products_calls(self, fake_repository):
        await fake_repository.list_products(GROCERY_CHAIN, AnyOf(()))
        await fake_repository.list_products(GROCERY_CHAIN, AnyOf(()))

        assert fake_repository.list_products_calls == 2

    @pytest.mark.asyncio
    async def test_ping_names_backend(self, fake_repository):
        assert (await fake_repository.ping())["backend"] == "memory"

    @pytest.mark.asyncio
    async def test_inventory_overwrite(self, fake_repository):
        fake_repository.add_inventory(
            StoreInventoryFact(store_id=DOWNTOWN_STORE, product_id=PEANUT_BUTTER, stock_quantity=1)
        )

        (fact,) = await fake_repository.get_inventory(DOWNTOWN_STORE, [PEANUT_BUTTER])
        assert fact.stock_quantity == 1
