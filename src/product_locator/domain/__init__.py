"""Domain layer - pure business logic with no infrastructure dependencies.

This layer contains:
- Catalog snapshots read by the engine (Chain, Store, Product, StoreInventoryFact)
- Store directory entries (ChainSummary, StoreListing)
- Search value objects (SearchQuery, ScoredCandidate, ProductHit)
- The error taxonomy surfaced to callers
"""

from product_locator.domain.errors import (
    DependencyUnavailableError,
    InternalSearchError,
    InvalidArgumentError,
    ProductSearchError,
    StoreNotFoundError,
)
from product_locator.domain.model import (
    Chain,
    ChainSummary,
    Product,
    Store,
    StoreInventoryFact,
    StoreListing,
)
from product_locator.domain.search import ProductHit, ScoredCandidate, SearchQuery, StockStatus


__all__ = [
    "Chain",
    "ChainSummary",
    "DependencyUnavailableError",
    "InternalSearchError",
    "InvalidArgumentError",
    "Product",
    "ProductHit",
    "ProductSearchError",
    "ScoredCandidate",
    "SearchQuery",
    "StockStatus",
    "Store",
    "StoreInventoryFact",
    "StoreListing",
    "StoreNotFoundError",
]
