"""Store inventory overlay for ranked products."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from product_locator.domain.model import Product, StoreInventoryFact
from product_locator.domain.search import ProductHit, ScoredCandidate, StockStatus


LOW_STOCK_THRESHOLD = 10


def derive_stock_status(is_available: bool, stock_quantity: int) -> StockStatus:
    """Map availability and quantity to exactly one stock status."""
    if not is_available or stock_quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock_quantity < LOW_STOCK_THRESHOLD:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def build_hit(product: Product, fact: StoreInventoryFact, relevance_score: float | None = None) -> ProductHit:
    return ProductHit(
        id=str(product.id),
        name=product.name,
        category=product.category or "",
        price=float(product.base_price) if product.base_price is not None else 0.0,
        aisle=fact.aisle or "",
        shelf=fact.shelf_position or "",
        stock_level=fact.stock_quantity,
        stock_status=derive_stock_status(fact.is_available, fact.stock_quantity),
        is_available=fact.is_available,
        image=product.image_url or "",
        description=product.description or "",
        relevance_score=relevance_score,
    )


def index_facts(facts: Iterable[StoreInventoryFact], store_id: int) -> dict[int, StoreInventoryFact]:
    """Key facts by product id, ignoring rows for other stores."""
    return {fact.product_id: fact for fact in facts if fact.store_id == store_id}


def overlay_inventory(
    ranked: Sequence[ScoredCandidate],
    store_id: int,
    facts: Iterable[StoreInventoryFact],
) -> list[ProductHit]:
    """Merge store facts onto ranked candidates, preserving order.

    Products without a fact for ``store_id`` are treated as available with
    zero stock and no location, which derives to out-of-stock.
    """
    by_product = index_facts(facts, store_id)
    return [
        build_hit(
            candidate.product,
            by_product.get(candidate.product.id) or StoreInventoryFact.missing(store_id, candidate.product.id),
            candidate.relevance_score,
        )
        for candidate in ranked
    ]


def overlay_products(
    products: Sequence[Product],
    store_id: int,
    facts: Iterable[StoreInventoryFact],
) -> list[ProductHit]:
    """Inventory overlay for unscored listings (catalog browse)."""
    by_product = index_facts(facts, store_id)
    return [
        build_hit(product, by_product.get(product.id) or StoreInventoryFact.missing(store_id, product.id))
        for product in products
    ]
