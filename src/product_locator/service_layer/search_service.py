"""Search service orchestration layer.

Runs the product search pipeline for one request:

    raw query + store -> normalize -> resolve chain -> fetch candidates
    -> score -> rank/truncate -> overlay store inventory

Each call is independent and keeps no state between requests, so searches
can run concurrently without coordination.
"""

from __future__ import annotations

import logging

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.config import Settings
from product_locator.domain.errors import InternalSearchError, InvalidArgumentError, ProductSearchError
from product_locator.domain.model import Product
from product_locator.domain.search import ProductHit, SearchQuery
from product_locator.observability.metrics import (
    SEARCH_CANDIDATES,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    SEARCH_RESULTS,
    track_latency,
)
from product_locator.observability.tracing import create_span
from product_locator.search.filters import DEFAULT_THRESHOLDS, CandidateThresholds, build_candidate_filter
from product_locator.search.inventory import overlay_inventory, overlay_products
from product_locator.search.normalizer import analyze_query, normalize_text
from product_locator.search.ranking import MAX_RESULTS, rank_candidates
from product_locator.search.scoring import DEFAULT_WEIGHTS, ScoringWeights, score_product
from product_locator.service_layer.tenant_scope import TenantScoper


logger = logging.getLogger(__name__)


class ProductSearchService:
    """High-level product search and catalog browse for kiosk requests."""

    def __init__(
        self,
        catalog_repository: AbstractCatalogRepository,
        *,
        thresholds: CandidateThresholds = DEFAULT_THRESHOLDS,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        result_limit: int = MAX_RESULTS,
        default_store_id: int | None = None,
        browse_page_size: int = 20,
        browse_max_page_size: int = 200,
    ):
        """Initialize search service with dependencies.

        Args:
            catalog_repository: Catalog, inventory and store reads (required)
            thresholds: Similarity thresholds for the recall filter
            weights: Relevance signal weights
            result_limit: Result cap, never above 50
            default_store_id: Store used when a request omits one
            browse_page_size: Default page size for catalog browse
            browse_max_page_size: Largest accepted browse page size
        """
        self.catalog_repository = catalog_repository
        self.tenant_scoper = TenantScoper(catalog_repository)
        self.thresholds = thresholds
        self.weights = weights
        self.result_limit = min(result_limit, MAX_RESULTS)
        self.default_store_id = default_store_id
        self.browse_page_size = browse_page_size
        self.browse_max_page_size = browse_max_page_size

    @classmethod
    def from_settings(cls, catalog_repository: AbstractCatalogRepository, settings: Settings) -> ProductSearchService:
        return cls(
            catalog_repository,
            thresholds=settings.candidate_thresholds(),
            result_limit=settings.search_result_limit,
            default_store_id=settings.default_store_id,
            browse_page_size=settings.browse_page_size,
            browse_max_page_size=settings.browse_max_page_size,
        )

    def resolve_store_id(self, store_id: int | None) -> int:
        if store_id is not None:
            return store_id
        if self.default_store_id is None:
            raise InvalidArgumentError("Store id (storeId) is required")
        return self.default_store_id

    async def search(self, raw_query: str | None, store_id: int | None = None) -> list[ProductHit]:
        """Return up to 50 ranked products for ``raw_query`` with store inventory merged in.

        A blank query returns ``[]`` without touching the catalog.

        Raises:
            InvalidArgumentError: query absent, or store absent with no default
            StoreNotFoundError: store does not resolve to a chain
            DependencyUnavailableError: catalog store lacks trigram similarity
            InternalSearchError: any other failure in the pipeline
        """
        if raw_query is None:
            SEARCH_REQUESTS.labels(operation="search", status=InvalidArgumentError.code).inc()
            raise InvalidArgumentError("Search query (q) is required")
        if not normalize_text(raw_query):
            SEARCH_REQUESTS.labels(operation="search", status="vacuous").inc()
            return []
        resolved_store_id = self.resolve_store_id(store_id)
        query = analyze_query(raw_query, resolved_store_id)

        logger.debug("Search query analyzed: %r, %d tokens", query.normalized_text, len(query.tokens))
        with (
            create_span(
                "product_search",
                attributes={"search.store_id": resolved_store_id, "search.token_count": len(query.tokens)},
            ) as span,
            track_latency(SEARCH_LATENCY, operation="search"),
        ):
            try:
                hits = await self._run_search(query)
            except ProductSearchError as exc:
                SEARCH_REQUESTS.labels(operation="search", status=exc.code).inc()
                raise
            except Exception as exc:
                SEARCH_REQUESTS.labels(operation="search", status=InternalSearchError.code).inc()
                logger.exception("Search pipeline failed for store %s", resolved_store_id)
                raise InternalSearchError(f"Search failed: {exc}") from exc
            span.set_attribute("search.result_count", len(hits))

        SEARCH_REQUESTS.labels(operation="search", status="ok").inc()
        SEARCH_RESULTS.labels().observe(len(hits))
        logger.debug("Search completed: %d results", len(hits))
        return hits

    async def _run_search(self, query: SearchQuery) -> list[ProductHit]:
        chain_id = await self.tenant_scoper.resolve(query.store_id)
        candidate_filter = build_candidate_filter(query, self.thresholds)

        with create_span("catalog.list_products", attributes={"catalog.chain_id": chain_id}):
            candidates = await self.catalog_repository.list_products(chain_id, candidate_filter)
        candidates = self._within_chain(candidates, chain_id)
        SEARCH_CANDIDATES.labels().observe(len(candidates))

        scored = [score_product(query, product, self.weights) for product in candidates]
        ranked = rank_candidates(scored, self.result_limit)
        if not ranked:
            return []

        with create_span("catalog.get_inventory", attributes={"catalog.product_count": len(ranked)}):
            facts = await self.catalog_repository.get_inventory(
                query.store_id, [candidate.product.id for candidate in ranked]
            )
        return overlay_inventory(ranked, query.store_id, facts)

    def _within_chain(self, products: list[Product], chain_id: int) -> list[Product]:
        scoped = [product for product in products if product.chain_id == chain_id]
        if len(scoped) != len(products):
            logger.warning(
                "Catalog returned %d products outside chain %s; dropped",
                len(products) - len(scoped),
                chain_id,
            )
        return scoped

    async def browse(
        self,
        store_id: int | None = None,
        *,
        page: int = 1,
        limit: int | None = None,
        category: str | None = None,
    ) -> list[ProductHit]:
        """List one name-ordered page of the store's chain catalog with inventory merged in."""
        page_size = self.browse_page_size if limit is None else limit
        if page < 1:
            raise InvalidArgumentError("page must be >= 1")
        if not 1 <= page_size <= self.browse_max_page_size:
            raise InvalidArgumentError(f"limit must be between 1 and {self.browse_max_page_size}")
        resolved_store_id = self.resolve_store_id(store_id)

        with track_latency(SEARCH_LATENCY, operation="browse"):
            try:
                chain_id = await self.tenant_scoper.resolve(resolved_store_id)
                products = await self.catalog_repository.browse_products(
                    chain_id,
                    category=category,
                    limit=page_size,
                    offset=(page - 1) * page_size,
                )
                products = self._within_chain(products, chain_id)
                facts = await self.catalog_repository.get_inventory(
                    resolved_store_id, [product.id for product in products]
                )
            except ProductSearchError as exc:
                SEARCH_REQUESTS.labels(operation="browse", status=exc.code).inc()
                raise
            except Exception as exc:
                SEARCH_REQUESTS.labels(operation="browse", status=InternalSearchError.code).inc()
                logger.exception("Catalog browse failed for store %s", resolved_store_id)
                raise InternalSearchError(f"Browse failed: {exc}") from exc

        SEARCH_REQUESTS.labels(operation="browse", status="ok").inc()
        return overlay_products(products, resolved_store_id, facts)
