"""
Inverted word index for Memory Search MCP Server.

Maps each word to its postings (document, frequency, field) and keeps a
prefix trie of indexed words for autocomplete.
"""

from collections import Counter
from collections.abc import Iterable

from .models import FieldType, Posting

MIN_PREFIX_LENGTH = 2


class PrefixTrie:
    """Word trie stored as an arena of nodes addressed by integer index.

    Node 0 is the root. ``_children[n]`` maps a character to a child node
    index and ``_counts[n]`` holds the aggregate frequency of the word
    ending at node ``n`` (0 when no indexed word ends there).
    """

    def __init__(self):
        self._children: list[dict[str, int]] = [{}]
        self._counts: list[int] = [0]

    def add(self, word: str, amount: int) -> None:
        """Adjust the aggregate frequency of ``word`` by ``amount``."""
        node = 0
        for char in word:
            child = self._children[node].get(char)
            if child is None:
                child = len(self._children)
                self._children.append({})
                self._counts.append(0)
                self._children[node][char] = child
            node = child
        self._counts[node] = max(0, self._counts[node] + amount)

    def _find(self, prefix: str) -> int | None:
        node = 0
        for char in prefix:
            child = self._children[node].get(char)
            if child is None:
                return None
            node = child
        return node

    def with_prefix(self, prefix: str, limit: int) -> list[str]:
        """Words starting with prefix, by aggregate frequency desc then alphabetically."""
        start = self._find(prefix)
        if start is None:
            return []

        matches: list[tuple[int, str]] = []
        stack = [(start, prefix)]
        while stack:
            node, word = stack.pop()
            if self._counts[node] > 0:
                matches.append((-self._counts[node], word))
            for char, child in self._children[node].items():
                stack.append((child, word + char))

        matches.sort()
        return [word for _, word in matches[:limit]]

    def clear(self) -> None:
        self._children = [{}]
        self._counts = [0]


class InvertedIndex:
    """Word -> postings index, unique per (word, document, field)."""

    def __init__(self):
        self._postings: dict[str, dict[tuple[str, FieldType], int]] = {}
        self._doc_words: dict[str, dict[FieldType, set[str]]] = {}
        self._trie = PrefixTrie()

    @property
    def word_count(self) -> int:
        return len(self._postings)

    def index(self, document_id: str, tokens: Iterable[str], field: FieldType) -> None:
        """Replace the postings of one document field with the given tokens."""
        self._remove_field(document_id, field)

        frequencies = Counter(tokens)
        if not frequencies:
            return

        words = self._doc_words.setdefault(document_id, {}).setdefault(field, set())
        for word, frequency in frequencies.items():
            self._postings.setdefault(word, {})[(document_id, field)] = frequency
            self._trie.add(word, frequency)
            words.add(word)

    def _remove_field(self, document_id: str, field: FieldType) -> None:
        fields = self._doc_words.get(document_id)
        if not fields or field not in fields:
            return

        for word in fields.pop(field):
            postings = self._postings.get(word)
            if postings is None:
                continue
            frequency = postings.pop((document_id, field), 0)
            self._trie.add(word, -frequency)
            if not postings:
                del self._postings[word]

        if not fields:
            del self._doc_words[document_id]

    def remove(self, document_id: str) -> None:
        """Delete every posting of a document across all fields."""
        for field in list(self._doc_words.get(document_id, {})):
            self._remove_field(document_id, field)

    def lookup(self, word: str, fields: Iterable[FieldType] | None = None) -> list[tuple[str, int]]:
        """Documents containing word with their frequency, most frequent first.

        Frequencies are summed across the selected fields (all when None).
        """
        postings = self._postings.get(word.lower())
        if not postings:
            return []

        allowed = set(fields) if fields is not None else None
        totals: dict[str, int] = {}
        for (document_id, field), frequency in postings.items():
            if allowed is None or field in allowed:
                totals[document_id] = totals.get(document_id, 0) + frequency

        return sorted(totals.items(), key=lambda item: (-item[1], item[0]))

    def contains(self, word: str, document_id: str, fields: Iterable[FieldType] | None = None) -> bool:
        """True if document has a posting for word in any of the selected fields."""
        postings = self._postings.get(word.lower())
        if not postings:
            return False
        candidates = fields if fields is not None else FieldType
        return any((document_id, field) in postings for field in candidates)

    def prefix_lookup(self, prefix: str, limit: int = 10) -> list[str]:
        """Distinct indexed words starting with prefix, for autocomplete.

        Prefixes shorter than MIN_PREFIX_LENGTH complete to nothing.
        """
        prefix = prefix.strip().lower()
        if limit <= 0 or len(prefix) < MIN_PREFIX_LENGTH:
            return []
        return self._trie.with_prefix(prefix, limit)

    def frequent_words(self, fragment: str, limit: int = 10) -> list[str]:
        """Words longer than three characters containing fragment, by total frequency."""
        fragment = fragment.strip().lower()
        totals = [
            (-sum(postings.values()), word)
            for word, postings in self._postings.items()
            if len(word) > 3 and fragment in word
        ]
        totals.sort()
        return [word for _, word in totals[:limit]]

    def document_frequency(self, word: str, field: FieldType | None = None) -> int:
        """Number of distinct documents containing word (in field, if given)."""
        postings = self._postings.get(word.lower())
        if not postings:
            return 0
        return len({doc for doc, posting_field in postings if field is None or posting_field == field})

    def _postings_for(self, document_id: str) -> list[Posting]:
        """All postings held for a document, ordered by field then word."""
        results: list[Posting] = []
        for field, words in sorted(self._doc_words.get(document_id, {}).items(), key=lambda x: x[0].value):
            for word in sorted(words):
                results.append(Posting(
                    word=word,
                    document_id=document_id,
                    frequency=self._postings[word][(document_id, field)],
                    field=field,
                ))
        return results

    def clear(self) -> None:
        self._postings.clear()
        self._doc_words.clear()
        self._trie.clear()
