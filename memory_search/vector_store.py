"""
TF-IDF vector store for Memory Search MCP Server.

Keeps one sparse TF-IDF vector per indexed document. Inverse document
frequencies come from the inverted index's document-frequency counts at the
time a vector is weighted; reweight() refreshes every stored vector against
the current counts.
"""

import math
from collections import Counter
from collections.abc import Callable, Iterator, Sequence

from .models import TfIdfVector


def cosine_similarity(a: TfIdfVector, b: TfIdfVector) -> float:
    """dot(a, b) / (|a| * |b|), or 0 when either vector has zero norm."""
    if a.norm == 0 or b.norm == 0:
        return 0.0
    # Iterate the smaller vector
    small, large = (a.terms, b.terms) if len(a.terms) <= len(b.terms) else (b.terms, a.terms)
    dot = sum(weight * large.get(term, 0.0) for term, weight in small.items())
    return dot / (a.norm * b.norm)


def _term_frequencies(tokens: Sequence[str]) -> dict[str, float]:
    if not tokens:
        return {}
    total = len(tokens)
    return {term: count / total for term, count in Counter(tokens).items()}


class VectorStore:
    """Document id -> TF-IDF vector, weighted with a shared idf source."""

    def __init__(self, document_frequency: Callable[[str], int]):
        self._document_frequency = document_frequency
        self._vectors: dict[str, TfIdfVector] = {}
        self.weighted_corpus_size = 0

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._vectors

    def idf(self, term: str, corpus_size: int | None = None) -> float:
        """ln(N / df) + 1, with df clamped to at least 1 and ln floored at 0.

        The +1 keeps terms present in every document from vanishing, which
        would otherwise zero out the whole vector of a single-document corpus.
        """
        total = corpus_size if corpus_size is not None else max(len(self._vectors), 1)
        frequency = max(self._document_frequency(term), 1)
        return max(0.0, math.log(total / frequency)) + 1.0

    def _weigh(self, document_id: str, tf: dict[str, float], corpus_size: int) -> TfIdfVector:
        terms = {term: value * self.idf(term, corpus_size) for term, value in tf.items()}
        norm = math.sqrt(sum(weight * weight for weight in terms.values()))
        return TfIdfVector(document_id=document_id, term_frequencies=tf, terms=terms, norm=norm)

    def upsert(self, document_id: str, tokens: Sequence[str]) -> TfIdfVector:
        """Compute and store the vector of a document, replacing any prior one."""
        corpus_size = len(self._vectors) + (0 if document_id in self._vectors else 1)
        vector = self._weigh(document_id, _term_frequencies(tokens), corpus_size)
        self._vectors[document_id] = vector
        return vector

    def query_vector(self, tokens: Sequence[str]) -> TfIdfVector:
        """Weigh query tokens with the same idf source as stored vectors."""
        return self._weigh("", _term_frequencies(tokens), max(len(self._vectors), 1))

    def remove(self, document_id: str) -> None:
        self._vectors.pop(document_id, None)

    def get(self, document_id: str) -> TfIdfVector | None:
        return self._vectors.get(document_id)

    def items(self) -> Iterator[tuple[str, TfIdfVector]]:
        return iter(list(self._vectors.items()))

    def is_stale(self, ratio: float) -> bool:
        """True once the corpus has grown or shrunk by more than ratio since the last reweight."""
        drift = abs(len(self._vectors) - self.weighted_corpus_size)
        return drift > ratio * max(self.weighted_corpus_size, 1)

    def reweight(self) -> int:
        """Recompute every stored vector against current document frequencies."""
        corpus_size = max(len(self._vectors), 1)
        for document_id, vector in list(self._vectors.items()):
            self._vectors[document_id] = self._weigh(document_id, vector.term_frequencies, corpus_size)
        self.weighted_corpus_size = len(self._vectors)
        return len(self._vectors)

    def clear(self) -> None:
        self._vectors.clear()
        self.weighted_corpus_size = 0
