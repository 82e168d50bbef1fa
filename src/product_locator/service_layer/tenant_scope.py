"""Tenant scoping: translate a store-scoped request into its chain partition."""

import logging

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.domain.errors import StoreNotFoundError
from product_locator.observability.context import bind_tenant


logger = logging.getLogger(__name__)


class TenantScoper:
    """Resolves stores to their owning chain.

    Every catalog read issued after ``resolve`` is restricted to the returned
    chain; the chain is also bound to the log context for the request.
    """

    def __init__(self, catalog_repository: AbstractCatalogRepository):
        self.catalog_repository = catalog_repository

    async def resolve(self, store_id: int) -> int:
        """Return the chain id owning ``store_id``.

        Raises:
            StoreNotFoundError: if the store is unknown (terminal, never retried)
        """
        try:
            chain_id = await self.catalog_repository.resolve_store_chain(store_id)
        except StoreNotFoundError:
            logger.info("Store %s does not resolve to a chain", store_id)
            raise
        bind_tenant(chain_id, store_id)
        return chain_id
