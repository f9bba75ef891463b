"""
Tests for TF-IDF vectors and cosine similarity.
"""

import math

import pytest

from memory_search.models import TfIdfVector
from memory_search.vector_store import VectorStore, cosine_similarity


def _vector(terms: dict[str, float]) -> TfIdfVector:
    norm = math.sqrt(sum(w * w for w in terms.values()))
    return TfIdfVector(document_id="v", term_frequencies=terms, terms=terms, norm=norm)


@pytest.fixture
def frequencies():
    """Mutable document-frequency table standing in for the inverted index."""
    return {}


@pytest.fixture
def vectors(frequencies):
    return VectorStore(lambda term: frequencies.get(term, 0))


class TestCosineSimilarity:
    """Tests for cosine_similarity()."""

    def test_identical(self):
        v = _vector({"cats": 1.0, "pets": 2.0})
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity(_vector({"cats": 1.0}), _vector({"dogs": 1.0})) == 0.0

    def test_zero_norm(self):
        assert cosine_similarity(_vector({}), _vector({"cats": 1.0})) == 0.0

    def test_symmetric(self):
        a = _vector({"cats": 1.0, "pets": 0.5})
        b = _vector({"pets": 1.0, "dogs": 3.0})
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


class TestIdf:
    """Tests for inverse document frequency."""

    def test_term_in_every_document_keeps_weight(self, vectors, frequencies):
        frequencies["pets"] = 2
        assert vectors.idf("pets", corpus_size=2) == pytest.approx(1.0)

    def test_rare_term_weighs_more(self, vectors, frequencies):
        frequencies["cats"] = 1
        frequencies["pets"] = 4
        assert vectors.idf("cats", corpus_size=4) > vectors.idf("pets", corpus_size=4)
        assert vectors.idf("cats", corpus_size=4) == pytest.approx(math.log(4) + 1)

    def test_unknown_term_clamped(self, vectors):
        """Test a zero document frequency does not divide by zero."""
        assert vectors.idf("ghost", corpus_size=3) == pytest.approx(math.log(3) + 1)


class TestVectorStore:
    """Tests for VectorStore."""

    def test_upsert_single_document(self, vectors, frequencies):
        frequencies.update({"cats": 1, "pets": 1})

        vector = vectors.upsert("d1", ["cats", "pets"])

        assert vector.term_frequencies == {"cats": 0.5, "pets": 0.5}
        assert vector.terms == {"cats": pytest.approx(0.5), "pets": pytest.approx(0.5)}
        assert vector.norm > 0
        assert "d1" in vectors
        assert len(vectors) == 1

    def test_empty_tokens_give_zero_norm(self, vectors):
        assert vectors.upsert("d1", []).norm == 0.0

    def test_upsert_replaces(self, vectors, frequencies):
        frequencies.update({"cats": 1, "dogs": 1})
        vectors.upsert("d1", ["cats"])
        vectors.upsert("d1", ["dogs"])

        assert list(vectors.get("d1").terms) == ["dogs"]
        assert len(vectors) == 1

    def test_remove(self, vectors):
        vectors.upsert("d1", ["cats"])
        vectors.remove("d1")
        vectors.remove("missing")

        assert vectors.get("d1") is None
        assert len(vectors) == 0

    def test_query_vector_uses_shared_idf(self, vectors, frequencies):
        frequencies.update({"cats": 1, "dogs": 1, "pets": 2})
        vectors.upsert("d1", ["cats", "pets"])
        vectors.upsert("d2", ["dogs", "pets"])

        query = vectors.query_vector(["cats"])

        assert query.terms["cats"] == pytest.approx(math.log(2) + 1)

    def test_reweight_applies_current_frequencies(self, vectors, frequencies):
        """Test vectors written under an old corpus size are refreshed by reweight()."""
        frequencies.update({"cats": 1, "pets": 1})
        vectors.upsert("d1", ["cats", "pets"])
        frequencies.update({"dogs": 1, "pets": 2})
        vectors.upsert("d2", ["dogs", "pets"])

        assert vectors.get("d1").terms["pets"] == pytest.approx(0.5)
        assert vectors.get("d1").terms["cats"] == pytest.approx(0.5)

        assert vectors.reweight() == 2
        assert vectors.get("d1").terms["cats"] == pytest.approx(0.5 * (math.log(2) + 1))
        assert vectors.get("d1").terms["pets"] == pytest.approx(0.5)

    def test_staleness(self, vectors):
        assert not vectors.is_stale(0.2)

        vectors.upsert("d1", ["cats"])
        assert vectors.is_stale(0.2)

        vectors.reweight()
        assert vectors.weighted_corpus_size == 1
        assert not vectors.is_stale(0.2)

    def test_small_drift_is_not_stale(self, vectors):
        for i in range(10):
            vectors.upsert(f"d{i}", ["cats"])
        vectors.reweight()

        vectors.upsert("d10", ["cats"])
        vectors.upsert("d11", ["cats"])

        assert not vectors.is_stale(0.2)
        vectors.upsert("d12", ["cats"])
        assert vectors.is_stale(0.2)

    def test_items_is_a_snapshot(self, vectors):
        vectors.upsert("d1", ["cats"])
        items = vectors.items()
        vectors.upsert("d2", ["dogs"])

        assert [doc for doc, _ in items] == ["d1"]

    def test_clear(self, vectors):
        vectors.upsert("d1", ["cats"])
        vectors.reweight()
        vectors.clear()

        assert len(vectors) == 0
        assert vectors.weighted_corpus_size == 0
