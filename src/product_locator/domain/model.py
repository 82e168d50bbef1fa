"""Domain model - catalog entities read by the search engine.

Following Cosmic Python principles:
- Domain model has NO dependencies on infrastructure
- Value objects are immutable and validated at construction
- The search engine only reads these; catalog and inventory management
  collaborators own every write

Snapshots are frozen so concurrent requests can share them without
coordination.
"""

from decimal import Decimal

from pydantic import Field
from pydantic.dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    """A tenant. Owns a product catalog and one or more stores."""

    chain_id: int
    name: str


@dataclass(frozen=True)
class Store:
    """A physical location belonging to exactly one chain."""

    store_id: int
    chain_id: int
    name: str
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    is_active: bool = True
    map_image_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "storeId": self.store_id,
            "chainId": self.chain_id,
            "name": self.name,
            "address": self.address or "",
            "city": self.city or "",
            "state": self.state or "",
            "zip": self.zip or "",
            "isActive": self.is_active,
            "mapImageUrl": self.map_image_url or "",
        }


@dataclass(frozen=True)
class ChainSummary:
    """Directory entry for a chain. ``store_count`` counts active stores only."""

    chain_id: int
    name: str
    store_count: int = Field(default=0, ge=0)

    def to_dict(self) -> dict[str, object]:
        return {"chainId": self.chain_id, "name": self.name, "storeCount": self.store_count}


@dataclass(frozen=True)
class StoreListing:
    """A store paired with its chain's display name."""

    store: Store
    chain_name: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {**self.store.to_dict(), "chainName": self.chain_name or ""}


@dataclass(frozen=True)
class Product:
    """Catalog entry. ``(chain_id, sku)`` is unique."""

    id: int
    chain_id: int
    sku: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    image_url: str | None = None

    def searchable_fields(self) -> dict[str, str]:
        """Lowercased text fields used by candidate filters and the scorer.

        Missing optional fields compare as the empty string.
        """
        return {
            "name": self.name.lower(),
            "sku": self.sku.lower(),
            "category": (self.category or "").lower(),
            "description": (self.description or "").lower(),
        }


@dataclass(frozen=True)
class StoreInventoryFact:
    """Per-store location and stock for one product."""

    store_id: int
    product_id: int
    aisle: str | None = None
    shelf_position: str | None = None
    stock_quantity: int = Field(default=0, ge=0)
    is_available: bool = True

    @classmethod
    def missing(cls, store_id: int, product_id: int) -> "StoreInventoryFact":
        """Fact used when a store has no inventory row: available, zero stock, no location."""
        return cls(store_id=store_id, product_id=product_id)
