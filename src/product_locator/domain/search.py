"""Domain models for search functionality.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- Domain logic lives in domain layer
- No infrastructure dependencies
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from product_locator.domain.model import Product


class StockStatus(str, Enum):
    """Tri-state stock status shown on the kiosk."""

    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


class SearchQuery(BaseModel):
    """Value object representing a normalized, request-scoped query."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    store_id: int
    normalized_text: str = ""
    tokens: tuple[str, ...] = ()

    @property
    def is_vacuous(self) -> bool:
        return not self.normalized_text

    @property
    def is_multi_word(self) -> bool:
        return len(self.tokens) > 1


class ScoredCandidate(BaseModel):
    """A candidate product and its relevance score."""

    model_config = ConfigDict(frozen=True)

    product: Product
    relevance_score: float = Field(ge=0.0)


class ProductHit(BaseModel):
    """A ranked product merged with store inventory, in kiosk response shape."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    category: str = ""
    price: float = 0.0
    aisle: str = ""
    shelf: str = ""
    stock_level: int = Field(default=0, ge=0, serialization_alias="stockLevel")
    stock_status: StockStatus = Field(serialization_alias="stockStatus")
    is_available: bool = Field(default=True, exclude=True)
    image: str = ""
    description: str = ""
    relevance_score: float | None = Field(default=None, exclude=True)

    def to_response(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
