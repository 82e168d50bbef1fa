"""Relevance scoring for candidate products.

The score is a weighted sum of independent signals. Signals overlap on
purpose: an exact name match also earns the prefix, contains and full
similarity credit. Scoring is a pure function of the normalized query, its
tokens and the candidate's fields.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from product_locator.domain.model import Product
from product_locator.domain.search import ScoredCandidate, SearchQuery
from product_locator.search.fuzzy import trigram_similarity


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Weights applied to each relevance signal."""

    exact_name: float = 1000.0
    exact_sku: float = 900.0
    name_prefix: float = 800.0
    name_similarity: float = 700.0
    sku_similarity: float = 600.0
    name_contains: float = 400.0
    category_contains: float = 200.0
    description_similarity: float = 100.0
    token_name_similarity: float = 300.0
    token_name_contains: float = 250.0


DEFAULT_WEIGHTS = ScoringWeights()


def score_breakdown(
    query_text: str,
    tokens: Sequence[str],
    fields: Mapping[str, str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> dict[str, float]:
    """Return every signal's contribution, keyed by signal name.

    Per-token signals are keyed ``token_name_similarity[i]`` and
    ``token_name_contains[i]`` and are only present for multi-word queries.
    """
    name = fields.get("name", "")
    sku = fields.get("sku", "")
    category = fields.get("category", "")
    description = fields.get("description", "")

    factors: dict[str, float] = {
        "exact_name": weights.exact_name if name == query_text else 0.0,
        "exact_sku": weights.exact_sku if sku == query_text else 0.0,
        "name_prefix": weights.name_prefix if name.startswith(query_text) else 0.0,
        "name_similarity": trigram_similarity(name, query_text) * weights.name_similarity,
        "sku_similarity": trigram_similarity(sku, query_text) * weights.sku_similarity,
        "name_contains": weights.name_contains if query_text in name else 0.0,
        "category_contains": weights.category_contains if query_text in category else 0.0,
        "description_similarity": trigram_similarity(description, query_text) * weights.description_similarity,
    }

    if len(tokens) > 1:
        for index, token in enumerate(tokens):
            factors[f"token_name_similarity[{index}]"] = (
                trigram_similarity(name, token) * weights.token_name_similarity
            )
            factors[f"token_name_contains[{index}]"] = weights.token_name_contains if token in name else 0.0

    return factors


def score_fields(
    query_text: str,
    tokens: Sequence[str],
    fields: Mapping[str, str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Sum of all signal contributions for one candidate."""
    return sum(score_breakdown(query_text, tokens, fields, weights).values())


def score_product(
    query: SearchQuery,
    product: Product,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredCandidate:
    score = score_fields(query.normalized_text, query.tokens, product.searchable_fields(), weights)
    return ScoredCandidate(product=product, relevance_score=score)
