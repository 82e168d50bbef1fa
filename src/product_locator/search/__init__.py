"""Fuzzy product search engine: normalization, recall filtering, scoring, ranking and overlay."""

from product_locator.search.filters import (
    AnyOf,
    CandidateThresholds,
    FieldContains,
    FieldEquals,
    FieldStartsWith,
    FilterExpression,
    SimilarityAbove,
    build_candidate_filter,
)
from product_locator.search.fuzzy import extract_trigrams, trigram_similarity
from product_locator.search.inventory import derive_stock_status, overlay_inventory, overlay_products
from product_locator.search.normalizer import analyze_query, normalize_text, tokenize
from product_locator.search.ranking import MAX_RESULTS, rank_candidates
from product_locator.search.scoring import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    score_breakdown,
    score_fields,
    score_product,
)


__all__ = [
    "DEFAULT_WEIGHTS",
    "MAX_RESULTS",
    "AnyOf",
    "CandidateThresholds",
    "FieldContains",
    "FieldEquals",
    "FieldStartsWith",
    "FilterExpression",
    "ScoringWeights",
    "SimilarityAbove",
    "analyze_query",
    "build_candidate_filter",
    "derive_stock_status",
    "extract_trigrams",
    "normalize_text",
    "overlay_inventory",
    "overlay_products",
    "rank_candidates",
    "score_breakdown",
    "score_fields",
    "score_product",
    "tokenize",
    "trigram_similarity",
]
