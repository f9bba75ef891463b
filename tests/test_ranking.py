"""
Tests for the hybrid ranker.
"""

import pytest

from memory_search.models import SearchStrategy
from memory_search.ranking import HybridRanker, to_ranked


class TestHybridRanker:
    """Tests for HybridRanker."""

    def test_weighted_sum(self):
        """Test final scores are 0.4 * exact + 0.3 * fuzzy + 0.3 * semantic."""
        ranker = HybridRanker()

        merged = ranker.combine(
            exact=[("a", 2.0)],
            fuzzy=[("a", 1.0), ("b", 0.5)],
            semantic=[("b", 1.0)],
        )

        assert [doc.document_id for doc in merged] == ["a", "b"]
        assert merged[0].score == pytest.approx(1.1)
        assert merged[1].score == pytest.approx(0.45)

    def test_sources(self):
        merged = HybridRanker().combine(
            exact=[("a", 1.0)],
            fuzzy=[("a", 1.0), ("b", 1.0)],
            semantic=[("a", 1.0)],
        )
        by_id = {doc.document_id: doc for doc in merged}

        assert by_id["a"].sources == ["exact", "fuzzy", "semantic"]
        assert by_id["b"].sources == ["fuzzy"]

    def test_missing_strategy_contributes_zero(self):
        merged = HybridRanker().combine(exact=[], fuzzy=[], semantic=[("a", 1.0)])

        assert merged[0].score == pytest.approx(0.3)

    def test_ties_broken_by_id(self):
        merged = HybridRanker().combine(exact=[("b", 1.0), ("a", 1.0)], fuzzy=[], semantic=[])

        assert [doc.document_id for doc in merged] == ["a", "b"]

    def test_custom_weights(self):
        ranker = HybridRanker({SearchStrategy.EXACT: 1.0})

        merged = ranker.merge({
            SearchStrategy.EXACT: [("a", 1.0)],
            SearchStrategy.SEMANTIC: [("b", 5.0)],
        })

        assert [(doc.document_id, doc.score) for doc in merged] == [("a", 1.0), ("b", 0.0)]

    def test_empty(self):
        assert HybridRanker().combine([], [], []) == []


class TestToRanked:
    """Tests for to_ranked()."""

    def test_keeps_scores_and_order(self):
        ranked = to_ranked(SearchStrategy.EXACT, [("a", 3.0), ("b", 1.0)])

        assert [(doc.document_id, doc.score, doc.sources) for doc in ranked] == [
            ("a", 3.0, ["exact"]),
            ("b", 1.0, ["exact"]),
        ]
