"""
Search strategy executors for Memory Search MCP Server.

Each executor queries one index and returns (document_id, score) pairs ranked
by score descending, ties broken by document id. Scores are weighted by the
document's importance and access count.
"""

import math
from typing import Protocol

from .inverted_index import InvertedIndex
from .models import FieldType, SearchOptions, SearchStrategy
from .tokenizer import tokenize
from .trigram_index import TrigramIndex
from .utils import Deadline
from .vector_store import VectorStore, cosine_similarity

Ranking = list[tuple[str, float]]


class DocumentStats(Protocol):
    """Per-document scoring inputs supplied by the record store."""

    def document_importance(self, document_id: str) -> float | None: ...

    def document_access_count(self, document_id: str) -> int: ...


def popularity_weight(importance: float, access_count: int) -> float:
    """importance * (1 + ln(access_count + 1))"""
    return importance * (1.0 + math.log(access_count + 1))


def rank_scores(scores: dict[str, float]) -> Ranking:
    return sorted(scores.items(), key=lambda item: (-item[1], item[0]))


class Strategy:
    """Base class for strategy executors."""

    name: SearchStrategy

    def __init__(self, stats: DocumentStats):
        self.stats = stats

    def _document_weight(self, document_id: str, min_importance: float) -> float | None:
        """Popularity weight, or None if the document is gone or below min_importance."""
        importance = self.stats.document_importance(document_id)
        if importance is None or importance < min_importance:
            return None
        return popularity_weight(importance, self.stats.document_access_count(document_id))

    def run(self, query: str, options: SearchOptions, deadline: Deadline | None = None) -> Ranking:
        raise NotImplementedError


class ExactStrategy(Strategy):
    """Sum of term frequencies from the inverted index."""

    name = SearchStrategy.EXACT

    def __init__(self, stats: DocumentStats, index: InvertedIndex):
        super().__init__(stats)
        self.index = index

    def run(self, query: str, options: SearchOptions, deadline: Deadline | None = None) -> Ranking:
        scores: dict[str, float] = {}
        weights: dict[str, float | None] = {}

        for token in tokenize(query):
            for document_id, frequency in self.index.lookup(token, options.fields):
                if document_id not in weights:
                    weights[document_id] = self._document_weight(document_id, options.min_importance)
                weight = weights[document_id]
                if weight is None:
                    continue
                scores[document_id] = scores.get(document_id, 0.0) + frequency * weight

        return rank_scores(scores)


class FuzzyStrategy(Strategy):
    """Trigram similarity between query words and indexed words."""

    name = SearchStrategy.FUZZY

    def __init__(
        self,
        stats: DocumentStats,
        trigram_index: TrigramIndex,
        inverted_index: InvertedIndex,
        threshold: float = 0.3,
        max_edits: int = 2,
    ):
        super().__init__(stats)
        self.trigram_index = trigram_index
        self.inverted_index = inverted_index
        self.threshold = threshold
        self.max_edits = max_edits

    def run(self, query: str, options: SearchOptions, deadline: Deadline | None = None) -> Ranking:
        scores: dict[str, float] = {}
        weights: dict[str, float | None] = {}

        for token in dict.fromkeys(tokenize(query)):
            # Best matching word per document for this query word
            best: dict[str, float] = {}
            for document_id, word, similarity in self.trigram_index.similar_words(
                token, self.threshold, self.max_edits, deadline
            ):
                if options.fields is not None and not self.inverted_index.contains(word, document_id, options.fields):
                    continue
                if similarity > best.get(document_id, 0.0):
                    best[document_id] = similarity

            for document_id, similarity in best.items():
                if document_id not in weights:
                    weights[document_id] = self._document_weight(document_id, options.min_importance)
                weight = weights[document_id]
                if weight is None:
                    continue
                scores[document_id] = scores.get(document_id, 0.0) + similarity * weight

        return rank_scores(scores)


class SemanticStrategy(Strategy):
    """Cosine similarity between the query's TF-IDF vector and stored vectors."""

    name = SearchStrategy.SEMANTIC

    def __init__(self, stats: DocumentStats, vectors: VectorStore, threshold: float = 0.1):
        super().__init__(stats)
        self.vectors = vectors
        self.threshold = threshold

    def run(self, query: str, options: SearchOptions, deadline: Deadline | None = None) -> Ranking:
        # Vectors are built from content only
        if options.fields is not None and FieldType.CONTENT not in options.fields:
            return []

        query_vector = self.vectors.query_vector(tokenize(query))
        if query_vector.norm == 0:
            return []

        scores: dict[str, float] = {}
        for document_id, vector in self.vectors.items():
            if deadline is not None:
                deadline.check()
            weight = self._document_weight(document_id, options.min_importance)
            if weight is None:
                continue
            similarity = cosine_similarity(query_vector, vector)
            if similarity > self.threshold:
                scores[document_id] = similarity * weight

        return rank_scores(scores)
