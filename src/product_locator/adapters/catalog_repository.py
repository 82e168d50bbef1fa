"""Catalog repository abstractions and the in-memory implementation.

Defines the catalog-read, inventory-read and store-resolution interfaces
the search engine consumes, following the Repository Pattern. Catalog and
inventory writes belong to other services; the only mutators here are the
in-memory loaders used for tests and embedding.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable, Sequence
import logging

from product_locator.domain.errors import StoreNotFoundError
from product_locator.domain.model import Chain, ChainSummary, Product, Store, StoreInventoryFact, StoreListing
from product_locator.search.filters import FilterExpression


logger = logging.getLogger(__name__)


class AbstractCatalogRepository(ABC):
    """Read-only access to a multi-tenant product catalog.

    Every product query is partitioned by ``chain_id``; implementations must
    never return products from another chain.
    """

    @abstractmethod
    async def resolve_store_chain(self, store_id: int) -> int:
        """Return the chain owning ``store_id``.

        Raises:
            StoreNotFoundError: if the store does not exist
        """
        raise NotImplementedError

    @abstractmethod
    async def list_products(self, chain_id: int, candidate_filter: FilterExpression) -> list[Product]:
        """Return the chain's products matching ``candidate_filter``."""
        raise NotImplementedError

    @abstractmethod
    async def get_inventory(self, store_id: int, product_ids: Sequence[int]) -> list[StoreInventoryFact]:
        """Return the store's inventory facts for the given products (missing rows omitted)."""
        raise NotImplementedError

    @abstractmethod
    async def get_store(self, store_id: int) -> Store:
        """Return a store by id.

        Raises:
            StoreNotFoundError: if the store does not exist
        """
        raise NotImplementedError

    @abstractmethod
    async def list_stores(self, chain_id: int) -> list[Store]:
        """Return the chain's active stores ordered by name."""
        raise NotImplementedError

    @abstractmethod
    async def list_chains(self) -> list[ChainSummary]:
        """Return every chain ordered by name, each with its active-store count."""
        raise NotImplementedError

    @abstractmethod
    async def list_active_stores(self) -> list[StoreListing]:
        """Return all active stores across chains, ordered by chain name then store name."""
        raise NotImplementedError

    @abstractmethod
    async def browse_products(
        self,
        chain_id: int,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Product]:
        """Return one page of the chain's products ordered by name."""
        raise NotImplementedError

    async def ping(self) -> dict[str, object]:
        """Optional hook returning backend health details."""

        return {"status": "healthy"}


class FakeCatalogRepository(AbstractCatalogRepository):
    """In-memory catalog for testing and embedding.

    Evaluates filter expressions in Python against each product's
    searchable fields.
    """

    def __init__(
        self,
        *,
        chains: Iterable[Chain] = (),
        stores: Iterable[Store] = (),
        products: Iterable[Product] = (),
        inventory: Iterable[StoreInventoryFact] = (),
    ) -> None:
        self._chains: dict[int, Chain] = {}
        self._stores: dict[int, Store] = {}
        self._products: dict[tuple[int, int], Product] = {}
        self._inventory: dict[tuple[int, int], StoreInventoryFact] = {}
        self.list_products_calls = 0
        for chain in chains:
            self.add_chain(chain)
        for store in stores:
            self.add_store(store)
        for product in products:
            self.add_product(product)
        for fact in inventory:
            self.add_inventory(fact)

    def add_chain(self, chain: Chain) -> None:
        self._chains[chain.chain_id] = chain

    def add_store(self, store: Store) -> None:
        self._stores[store.store_id] = store

    def add_product(self, product: Product) -> None:
        for existing in self._products.values():
            if (
                existing.chain_id == product.chain_id
                and existing.sku.lower() == product.sku.lower()
                and existing.id != product.id
            ):
                raise ValueError(f"Duplicate sku {product.sku!r} in chain {product.chain_id}")
        self._products[(product.chain_id, product.id)] = product

    def add_inventory(self, fact: StoreInventoryFact) -> None:
        self._inventory[(fact.store_id, fact.product_id)] = fact

    async def resolve_store_chain(self, store_id: int) -> int:
        store = self._stores.get(store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        return store.chain_id

    async def list_products(self, chain_id: int, candidate_filter: FilterExpression) -> list[Product]:
        self.list_products_calls += 1
        return [
            product
            for (product_chain, _), product in self._products.items()
            if product_chain == chain_id and candidate_filter.matches(product.searchable_fields())
        ]

    async def get_inventory(self, store_id: int, product_ids: Sequence[int]) -> list[StoreInventoryFact]:
        return [
            self._inventory[(store_id, product_id)]
            for product_id in product_ids
            if (store_id, product_id) in self._inventory
        ]

    async def get_store(self, store_id: int) -> Store:
        store = self._stores.get(store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        return store

    async def list_stores(self, chain_id: int) -> list[Store]:
        stores = [store for store in self._stores.values() if store.chain_id == chain_id and store.is_active]
        return sorted(stores, key=lambda store: store.name)

    async def list_chains(self) -> list[ChainSummary]:
        active = Counter(store.chain_id for store in self._stores.values() if store.is_active)
        summaries = [
            ChainSummary(chain_id=chain.chain_id, name=chain.name, store_count=active[chain.chain_id])
            for chain in self._chains.values()
        ]
        return sorted(summaries, key=lambda summary: (summary.name, summary.chain_id))

    async def list_active_stores(self) -> list[StoreListing]:
        listings = []
        for store in self._stores.values():
            if not store.is_active:
                continue
            chain = self._chains.get(store.chain_id)
            listings.append(StoreListing(store=store, chain_name=chain.name if chain else None))
        listings.sort(key=lambda listing: (listing.chain_name or "", listing.store.name, listing.store.store_id))
        return listings

    async def browse_products(
        self,
        chain_id: int,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Product]:
        products = [
            product
            for (product_chain, _), product in self._products.items()
            if product_chain == chain_id and (category is None or product.category == category)
        ]
        products.sort(key=lambda product: (product.name, product.id))
        return products[offset : offset + limit]

    async def ping(self) -> dict[str, object]:
        return {"status": "healthy", "backend": "memory", "products": len(self._products)}
