"""Store directory lookups used by kiosks to pick their store."""

import logging

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.domain.model import ChainSummary, Store, StoreListing


logger = logging.getLogger(__name__)


class StoreService:
    """Read-only store lookups."""

    def __init__(self, catalog_repository: AbstractCatalogRepository):
        self.catalog_repository = catalog_repository

    async def get_store(self, store_id: int) -> Store:
        return await self.catalog_repository.get_store(store_id)

    async def list_chain_stores(self, chain_id: int) -> list[Store]:
        stores = await self.catalog_repository.list_stores(chain_id)
        logger.debug("Chain %s has %d active stores", chain_id, len(stores))
        return stores

    async def list_chains(self) -> list[ChainSummary]:
        return await self.catalog_repository.list_chains()

    async def list_active_stores(self) -> list[StoreListing]:
        """Every active store across chains, for the kiosk store picker."""
        listings = await self.catalog_repository.list_active_stores()
        logger.debug("Store directory lists %d active stores", len(listings))
        return listings
