"""Ordering and truncation of scored candidates."""

from __future__ import annotations

from collections.abc import Iterable

from product_locator.domain.search import ScoredCandidate


# Response-size contract callers rely on; configuration may only tighten it.
MAX_RESULTS = 50


def ranking_key(candidate: ScoredCandidate) -> tuple[float, str, int]:
    """Descending score, then case-insensitive name, then product id."""
    return (-candidate.relevance_score, candidate.product.name.lower(), candidate.product.id)


def rank_candidates(candidates: Iterable[ScoredCandidate], limit: int = MAX_RESULTS) -> list[ScoredCandidate]:
    """Sort candidates by relevance and keep at most ``limit`` (never more than 50)."""
    cap = max(0, min(limit, MAX_RESULTS))
    return sorted(candidates, key=ranking_key)[:cap]
