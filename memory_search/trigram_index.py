"""
Trigram index for Memory Search MCP Server.

Indexes character trigrams of space-padded words for approximate matching,
and provides the edit-distance and trigram-similarity measures used to
score fuzzy candidates.
"""

from collections.abc import Iterable

from .models import TrigramPosting
from .utils import Deadline


def trigrams(word: str) -> list[str]:
    """Trigrams of the space-padded word, in order of position.

    Padding with one space on each side makes leading and trailing
    trigrams distinguishable from interior ones.
    """
    if not word:
        return []
    padded = f" {word} "
    return [padded[i:i + 3] for i in range(len(padded) - 2)]


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance using the full dynamic-programming matrix."""
    rows = len(a) + 1
    cols = len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,         # deletion
                matrix[i][j - 1] + 1,         # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[-1][-1]


def trigram_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the two strings' trigram sets."""
    set_a = set(trigrams(a))
    set_b = set(trigrams(b))
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


class TrigramIndex:
    """Trigram -> (document, word) postings for fuzzy word lookup."""

    def __init__(self):
        # trigram -> {(document_id, word): position}
        self._postings: dict[str, dict[tuple[str, str], int]] = {}
        self._doc_trigrams: dict[str, set[str]] = {}

    @property
    def trigram_count(self) -> int:
        return len(self._postings)

    def index(self, document_id: str, words: Iterable[str]) -> None:
        """Replace the trigram postings of a document with those of words."""
        self.remove(document_id)

        doc_trigrams: set[str] = set()
        for word in dict.fromkeys(words):
            for position, trigram in enumerate(trigrams(word)):
                self._postings.setdefault(trigram, {}).setdefault((document_id, word), position)
                doc_trigrams.add(trigram)

        if doc_trigrams:
            self._doc_trigrams[document_id] = doc_trigrams

    def remove(self, document_id: str) -> None:
        for trigram in self._doc_trigrams.pop(document_id, set()):
            postings = self._postings.get(trigram)
            if postings is None:
                continue
            for key in [key for key in postings if key[0] == document_id]:
                del postings[key]
            if not postings:
                del self._postings[trigram]

    def _candidates_for(self, trigram: str) -> list[tuple[str, str]]:
        """(document_id, word) pairs whose word contains the trigram."""
        return sorted(self._postings.get(trigram, {}))

    def _postings_for(self, document_id: str) -> list[TrigramPosting]:
        results = [
            TrigramPosting(trigram=trigram, document_id=doc, word=word, position=position)
            for trigram in self._doc_trigrams.get(document_id, set())
            for (doc, word), position in self._postings[trigram].items()
            if doc == document_id
        ]
        results.sort(key=lambda p: (p.word, p.position, p.trigram))
        return results

    def _candidate_pairs(self, word: str, deadline: Deadline | None) -> dict[tuple[str, str], None]:
        pairs: dict[tuple[str, str], None] = {}
        for trigram in dict.fromkeys(trigrams(word)):
            if deadline is not None:
                deadline.check()
            for pair in self._postings.get(trigram, {}):
                pairs[pair] = None
        return pairs

    def similar_words(
        self,
        word: str,
        threshold: float,
        max_edits: int = 0,
        deadline: Deadline | None = None,
    ) -> list[tuple[str, str, float]]:
        """Candidates sharing a trigram with word that pass the fuzzy policy.

        A candidate is kept when its trigram similarity exceeds threshold, or
        when it lies within ``min(max_edits, len(word) // 2)`` edits of word.

        Returns:
            (document_id, candidate_word, similarity) tuples
        """
        allowed_edits = min(max_edits, len(word) // 2)
        similarity_cache: dict[str, tuple[float, bool]] = {}
        matches: list[tuple[str, str, float]] = []

        for document_id, candidate in self._candidate_pairs(word, deadline):
            if deadline is not None:
                deadline.check()
            verdict = similarity_cache.get(candidate)
            if verdict is None:
                similarity = trigram_similarity(word, candidate)
                accepted = similarity > threshold or (
                    allowed_edits > 0 and edit_distance(word, candidate) <= allowed_edits
                )
                verdict = similarity_cache[candidate] = (similarity, accepted)
            if verdict[1]:
                matches.append((document_id, candidate, verdict[0]))

        return matches

    def suggest(self, word: str, limit: int = 5) -> list[str]:
        """Indexed words closest to word, by edit distance then similarity."""
        candidates = {candidate for _, candidate in self._candidate_pairs(word, None)}
        candidates.discard(word)
        ranked = sorted(
            candidates,
            key=lambda c: (edit_distance(word, c), -trigram_similarity(word, c), c),
        )
        return ranked[:limit]

    def clear(self) -> None:
        self._postings.clear()
        self._doc_trigrams.clear()
