"""Unit tests for candidate ordering and truncation."""

import pytest

from product_locator.domain.model import Product
from product_locator.domain.search import ScoredCandidate
from product_locator.search.ranking import MAX_RESULTS, rank_candidates, ranking_key


def _candidate(product_id: int, name: str, score: float) -> ScoredCandidate:
    product = Product(id=product_id, chain_id=1, sku=f"SKU{product_id}", name=name)
    return ScoredCandidate(product=product, relevance_score=score)


@pytest.mark.unit
class TestRankCandidates:
    def test_orders_by_descending_score(self):
        ranked = rank_candidates([_candidate(1, "b", 10.0), _candidate(2, "a", 30.0), _candidate(3, "c", 20.0)])

        assert [candidate.product.id for candidate in ranked] == [2, 3, 1]

    def test_ties_break_on_case_insensitive_name(self):
        candidates = [_candidate(1, "banana", 5.0), _candidate(2, "Apple", 5.0), _candidate(3, "cherry", 5.0)]

        ranked = rank_candidates(candidates)

        assert [candidate.product.name for candidate in ranked] == ["Apple", "banana", "cherry"]

    def test_identical_score_and_name_break_on_id(self):
        ranked = rank_candidates([_candidate(9, "Milk", 1.0), _candidate(4, "milk", 1.0)])

        assert [candidate.product.id for candidate in ranked] == [4, 9]

    def test_caps_at_fifty(self):
        candidates = [_candidate(i, f"item {i}", float(i)) for i in range(120)]

        ranked = rank_candidates(candidates)

        assert len(ranked) == MAX_RESULTS == 50
        assert ranked[0].relevance_score == 119.0

    def test_limit_cannot_exceed_fifty(self):
        candidates = [_candidate(i, f"item {i}", 1.0) for i in range(80)]

        assert len(rank_candidates(candidates, limit=500)) == 50
        assert len(rank_candidates(candidates, limit=7)) == 7

    def test_empty_input(self):
        assert rank_candidates([]) == []

    def test_ranking_key_shape(self):
        assert ranking_key(_candidate(3, "Milk", 2.5)) == (-2.5, "milk", 3)
