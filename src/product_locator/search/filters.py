"""Structured candidate filter expressions.

The recall filter is expressed as an immutable tree of conditions rather
than a query string. Repositories either evaluate the tree directly
(in-memory catalogs) or compile it to their own query language (SQLite),
so parameter binding stays an adapter concern.

All condition values are expected to be normalized (lowercased) already;
field values are lowercased by ``Product.searchable_fields``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Literal

from product_locator.domain.search import SearchQuery
from product_locator.search.fuzzy import trigram_similarity


FieldName = Literal["name", "sku", "category", "description"]

SEARCHABLE_FIELDS: tuple[FieldName, ...] = ("name", "sku", "category", "description")


class FilterExpression(ABC):
    """A boolean condition over a product's searchable fields."""

    @abstractmethod
    def matches(self, fields: Mapping[str, str]) -> bool:
        raise NotImplementedError

    def walk(self) -> Iterator[FilterExpression]:
        """Yield this node and every descendant, depth first."""
        yield self


@dataclass(frozen=True, slots=True)
class FieldEquals(FilterExpression):
    field: FieldName
    value: str

    def matches(self, fields: Mapping[str, str]) -> bool:
        return fields.get(self.field, "") == self.value


@dataclass(frozen=True, slots=True)
class FieldStartsWith(FilterExpression):
    field: FieldName
    value: str

    def matches(self, fields: Mapping[str, str]) -> bool:
        return fields.get(self.field, "").startswith(self.value)


@dataclass(frozen=True, slots=True)
class FieldContains(FilterExpression):
    field: FieldName
    value: str

    def matches(self, fields: Mapping[str, str]) -> bool:
        return self.value in fields.get(self.field, "")


@dataclass(frozen=True, slots=True)
class SimilarityAbove(FilterExpression):
    """Trigram similarity strictly greater than ``threshold``."""

    field: FieldName
    value: str
    threshold: float

    def matches(self, fields: Mapping[str, str]) -> bool:
        return trigram_similarity(fields.get(self.field, ""), self.value) > self.threshold


@dataclass(frozen=True, slots=True)
class AnyOf(FilterExpression):
    """Logical OR over child conditions. An empty ``AnyOf`` matches nothing."""

    children: tuple[FilterExpression, ...]

    def matches(self, fields: Mapping[str, str]) -> bool:
        return any(child.matches(fields) for child in self.children)

    def walk(self) -> Iterator[FilterExpression]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True, slots=True)
class CandidateThresholds:
    """Similarity thresholds for the recall filter."""

    name: float = 0.20
    description: float = 0.15

    def __post_init__(self) -> None:
        for label, value in (("name", self.name), ("description", self.description)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{label} similarity threshold must be within [0, 1], got {value}")


DEFAULT_THRESHOLDS = CandidateThresholds()


def build_candidate_filter(
    query: SearchQuery,
    thresholds: CandidateThresholds = DEFAULT_THRESHOLDS,
) -> AnyOf:
    """Assemble the recall filter for a normalized query.

    A product is a candidate when any condition holds against the full
    query. Multi-word queries additionally admit products whose name
    matches any single token (OR semantics across tokens).
    """
    q = query.normalized_text
    conditions: list[FilterExpression] = [
        FieldEquals("name", q),
        FieldEquals("sku", q),
        FieldStartsWith("name", q),
        FieldContains("name", q),
        FieldContains("sku", q),
        FieldContains("category", q),
        FieldContains("description", q),
        SimilarityAbove("name", q, thresholds.name),
        SimilarityAbove("sku", q, thresholds.name),
        SimilarityAbove("description", q, thresholds.description),
    ]

    if query.is_multi_word:
        for token in query.tokens:
            conditions.append(SimilarityAbove("name", token, thresholds.name))
            conditions.append(FieldContains("name", token))

    return AnyOf(tuple(conditions))
