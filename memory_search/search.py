"""
Search service for Memory Search MCP Server.

Contains the SearchService facade: it keeps the word, trigram and vector
indexes in step with the record store, dispatches queries to the strategy
executors, merges hybrid results, caches them and records performance.
"""

import asyncio
import json
import time
from datetime import datetime
from typing import Any

import structlog

from .cache import ResultCache
from .config import FIELD_WEIGHTS, Settings
from .inverted_index import InvertedIndex
from .metrics import PerformanceTracker
from .models import (
    CacheStats,
    FieldType,
    IndexErrorKind,
    IndexResult,
    Memory,
    RankedDocument,
    RebuildResult,
    SearchHit,
    SearchOptions,
    SearchResult,
    SearchStrategy,
)
from .ranking import HybridRanker, to_ranked
from .store import MemoryStore
from .strategies import ExactStrategy, FuzzyStrategy, Ranking, SemanticStrategy, Strategy
from .tokenizer import field_texts, tokenize
from .trigram_index import TrigramIndex
from .utils import Deadline, SearchServiceError, clamp_limit
from .vector_store import VectorStore, cosine_similarity

logger = structlog.get_logger(__name__)

# Cache keys containing any of these are dropped after a write
INVALIDATION_PATTERNS = ("search",)


def normalize_query(query: str) -> str:
    """Lower-case query with runs of whitespace collapsed."""
    return " ".join(query.lower().split())


class SearchService:
    """Facade over the search indexes for one MemoryStore.

    Construct explicitly, call init() before use and shutdown() when done.
    All index mutation happens under a single asyncio.Lock, which cache-miss
    queries also hold while strategies run.
    """

    def __init__(self, store: MemoryStore, settings: Settings | None = None, cache: ResultCache | None = None):
        self.store = store
        self.settings = settings or Settings()

        self.inverted_index = InvertedIndex()
        self.trigram_index = TrigramIndex()
        self.vectors = VectorStore(
            lambda term: self.inverted_index.document_frequency(term, FieldType.CONTENT)
        )
        self.cache = cache or ResultCache(self.settings.cache_max_size, self.settings.cache_ttl)
        self.metrics = PerformanceTracker()
        self.ranker = HybridRanker()

        self._executors: dict[SearchStrategy, Strategy] = {
            SearchStrategy.EXACT: ExactStrategy(store, self.inverted_index),
            SearchStrategy.FUZZY: FuzzyStrategy(
                store,
                self.trigram_index,
                self.inverted_index,
                threshold=self.settings.fuzzy_threshold,
                max_edits=self.settings.fuzzy_max_edits,
            ),
            SearchStrategy.SEMANTIC: SemanticStrategy(
                store, self.vectors, threshold=self.settings.semantic_threshold
            ),
        }
        self._lock = asyncio.Lock()
        self._started = False

    # ============== Lifecycle ==============

    async def init(self) -> RebuildResult:
        """Load the store, subscribe to its changes and build all indexes."""
        if self._started:
            return RebuildResult(rebuilt=len(self.vectors), errors=0)

        await self.store.load()
        self.store.subscribe(self)
        result = await self.rebuild_indexes()
        self._started = True
        logger.info("search_service_started", documents=len(self.store), errors=result.errors)
        return result

    async def shutdown(self) -> None:
        """Unsubscribe from the store, persist it and drop cached results."""
        self.store.unsubscribe(self)
        await self.store.save()
        self.cache.clear()
        self._started = False
        logger.info("search_service_stopped")

    # ============== Index maintenance ==============

    def _remove_document(self, document_id: str) -> None:
        self.inverted_index.remove(document_id)
        self.trigram_index.remove(document_id)
        self.vectors.remove(document_id)

    def _index_document(self, document_id: str, content: str, metadata: dict[str, Any]) -> IndexResult:
        """Replace every index entry of a document. Caller holds the lock."""
        try:
            tokens = {field: tokenize(text) for field, text in field_texts(content, metadata).items()}
        except Exception as e:
            self._remove_document(document_id)
            return IndexResult(document_id=document_id, error=IndexErrorKind.TOKENIZE_FAILURE, detail=str(e))

        try:
            self.inverted_index.remove(document_id)
            self.trigram_index.remove(document_id)
            for field, field_tokens in tokens.items():
                self.inverted_index.index(document_id, field_tokens, field)
            self.trigram_index.index(
                document_id, (token for field_tokens in tokens.values() for token in field_tokens)
            )
        except Exception as e:
            self._remove_document(document_id)
            return IndexResult(document_id=document_id, error=IndexErrorKind.STORAGE_WRITE_FAILURE, detail=str(e))

        try:
            self.vectors.upsert(document_id, tokens[FieldType.CONTENT])
        except Exception as e:
            self.vectors.remove(document_id)
            return IndexResult(document_id=document_id, error=IndexErrorKind.VECTOR_FAILURE, detail=str(e))

        return IndexResult(document_id=document_id)

    def _refresh_vectors_if_stale(self) -> None:
        if self.vectors.is_stale(self.settings.idf_refresh_ratio):
            count = self.vectors.reweight()
            logger.debug("vectors_reweighted", vectors=count)

    async def on_document_indexed(self, document_id: str, content: str, metadata: dict[str, Any]) -> IndexResult:
        """Re-index a created or changed document. Never raises."""
        async with self._lock:
            result = self._index_document(document_id, content, metadata)
            self._refresh_vectors_if_stale()
            self.cache.invalidate(INVALIDATION_PATTERNS)
        return result

    async def on_document_removed(self, document_id: str) -> None:
        """Drop a deleted document from every index. Never raises."""
        async with self._lock:
            try:
                self._remove_document(document_id)
                self._refresh_vectors_if_stale()
            except Exception as e:
                logger.warning("index_remove_failed", id=document_id, error=str(e))
            self.cache.invalidate(INVALIDATION_PATTERNS)

    async def rebuild_indexes(self) -> RebuildResult:
        """Clear and repopulate every index from the full record set."""
        start_time = time.time()
        rebuilt = 0
        errors = 0

        async with self._lock:
            self.inverted_index.clear()
            self.trigram_index.clear()
            self.vectors.clear()

            for memory in self.store.all_memories():
                result = self._index_document(memory.id, memory.content, memory.metadata)
                if result.ok:
                    rebuilt += 1
                else:
                    errors += 1
                    logger.warning("index_failed", id=memory.id, kind=result.error.value, detail=result.detail)

            self.vectors.reweight()
            self.cache.invalidate(INVALIDATION_PATTERNS)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        self.metrics.record("rebuild_indexes", duration_ms)
        logger.info("indexes_rebuilt", rebuilt=rebuilt, errors=errors, duration_ms=duration_ms)
        return RebuildResult(rebuilt=rebuilt, errors=errors)

    # ============== Search ==============

    @staticmethod
    def _cache_key(query: str, options: SearchOptions) -> str:
        normalized = normalize_query(query)
        fields = sorted(f.value for f in options.fields) if options.fields is not None else None
        opts = json.dumps(
            {"limit": options.limit, "min_importance": options.min_importance, "fields": fields},
            sort_keys=True,
        )
        return f"search:{options.strategy.value}:{normalized}:{opts}"

    async def _run_branch(
        self, executor: Strategy, query: str, options: SearchOptions, deadline: Deadline
    ) -> Ranking | None:
        """Run one hybrid branch. Returns None if the strategy failed."""
        try:
            return await asyncio.to_thread(executor.run, query, options, deadline)
        except Exception as e:
            logger.warning("strategy_failed", strategy=executor.name.value, query=query, error=str(e))
            return None

    async def _execute(
        self, query: str, options: SearchOptions, deadline: Deadline
    ) -> tuple[list[RankedDocument], bool]:
        """Ranked documents, and whether any hybrid branch was dropped."""
        if options.strategy is SearchStrategy.HYBRID:
            exact, fuzzy, semantic = await asyncio.gather(
                self._run_branch(self._executors[SearchStrategy.EXACT], query, options, deadline),
                self._run_branch(self._executors[SearchStrategy.FUZZY], query, options, deadline),
                self._run_branch(self._executors[SearchStrategy.SEMANTIC], query, options, deadline),
            )
            if exact is None and fuzzy is None and semantic is None:
                raise SearchServiceError("all hybrid strategies failed")
            degraded = exact is None or fuzzy is None or semantic is None
            return self.ranker.combine(exact or [], fuzzy or [], semantic or []), degraded

        executor = self._executors[options.strategy]
        ranking = await asyncio.to_thread(executor.run, query, options, deadline)
        return to_ranked(options.strategy, ranking), False

    def _materialize(self, ranked: list[RankedDocument], limit: int) -> list[SearchHit]:
        top = ranked[:limit]
        memories = {m.id: m for m in self.store.fetch_by_ids([doc.document_id for doc in top])}
        return [
            SearchHit(memory=memories[doc.document_id], score=doc.score, sources=doc.sources)
            for doc in top
            if doc.document_id in memories
        ]

    def _substring_scan(self, query: str, options: SearchOptions) -> list[SearchHit]:
        """Naive case-insensitive substring match over raw content."""
        try:
            needle = query.strip().lower()
            if not needle:
                return []
            matches = [
                m for m in self.store.all_memories()
                if needle in m.content.lower() and m.importance >= options.min_importance
            ]
            matches.sort(key=lambda m: (-m.importance, -m.access_count, -m.created_at.timestamp(), m.id))
            return [
                SearchHit(memory=m, score=m.importance, sources=["substring"])
                for m in matches[:options.limit]
            ]
        except Exception as e:
            logger.error("fallback_search_failed", query=query, error=str(e))
            raise SearchServiceError(f"Search failed for query '{query}'") from e

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        deadline_ms: float | None = None,
    ) -> SearchResult:
        """Search memories with the strategy selected in options.

        Args:
            query: Free-text query
            options: Strategy, limit, importance floor and field restriction
            deadline_ms: Time budget for fuzzy and semantic scans (defaults to settings)

        Raises:
            SearchServiceError: If both the search and its substring fallback fail
        """
        self.metrics.record_query(normalize_query(query))
        return await self._search(query, options, deadline_ms)

    async def _search(
        self,
        query: str,
        options: SearchOptions | None,
        deadline_ms: float | None,
    ) -> SearchResult:
        start_time = time.time()
        options = options or SearchOptions(limit=self.settings.default_limit)
        limit = clamp_limit(options.limit, self.settings.default_limit, self.settings.max_limit)
        options = options.model_copy(update={"limit": limit})
        operation = f"search_{options.strategy.value}"

        key = self._cache_key(query, options)
        cached = self.cache.get(key)
        if cached is not None:
            self.metrics.record(operation, (time.time() - start_time) * 1000, cache_hit=True)
            return cached

        fallback = False
        degraded = False

        async with self._lock:
            # The budget covers the scans only, not the wait for the lock
            deadline = Deadline(deadline_ms if deadline_ms is not None else self.settings.search_deadline_ms)
            try:
                ranked, degraded = await self._execute(query, options, deadline)
                hits = self._materialize(ranked, options.limit)
                total_count = len(ranked)
            except Exception as e:
                logger.warning("search_failed", query=query, strategy=options.strategy.value, error=str(e))
                hits = self._substring_scan(query, options)
                total_count = len(hits)
                fallback = True

            result = SearchResult(
                documents=hits,
                total_count=total_count,
                query_time_ms=round((time.time() - start_time) * 1000, 2),
                strategy=options.strategy.value,
                fallback=fallback,
            )
            # Fallback and partial hybrid results must not outlive this call
            if not fallback and not degraded:
                self.cache.put(key, result)

        self.metrics.record(operation, result.query_time_ms)
        logger.debug(
            "search_completed",
            query=query,
            strategy=options.strategy.value,
            results=len(hits),
            fallback=fallback,
            degraded=degraded,
            duration_ms=result.query_time_ms,
        )
        return result

    async def multi_field_search(
        self,
        query: str,
        fields: list[FieldType] | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResult:
        """Search each field separately and sum field-weighted scores.

        Every field is searched up to max_limit so that a document ranked low
        in several fields still collects all of its contributions.
        """
        start_time = time.time()
        options = options or SearchOptions(limit=self.settings.default_limit)
        limit = clamp_limit(options.limit, self.settings.default_limit, self.settings.max_limit)
        fields = list(dict.fromkeys(fields or FIELD_WEIGHTS))
        self.metrics.record_query(normalize_query(query))

        scores: dict[str, float] = {}
        sources: dict[str, list[str]] = {}
        memories: dict[str, Memory] = {}
        fallback = False

        for field in fields:
            field_options = options.model_copy(update={"fields": [field], "limit": self.settings.max_limit})
            per_field = await self._search(query, field_options, None)
            fallback = fallback or per_field.fallback
            weight = FIELD_WEIGHTS.get(field, 1.0)
            for hit in per_field.documents:
                memory_id = hit.memory.id
                scores[memory_id] = scores.get(memory_id, 0.0) + weight * hit.score
                memories[memory_id] = hit.memory
                merged = sources.setdefault(memory_id, [])
                merged.extend(s for s in hit.sources if s not in merged)

        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        hits = [
            SearchHit(memory=memories[memory_id], score=score, sources=sources[memory_id])
            for memory_id, score in ranked[:limit]
        ]
        query_time_ms = round((time.time() - start_time) * 1000, 2)
        self.metrics.record("multi_field_search", query_time_ms)
        return SearchResult(
            documents=hits,
            total_count=len(ranked),
            query_time_ms=query_time_ms,
            strategy=f"multi_field:{options.strategy.value}",
            fallback=fallback,
        )

    async def search_by_date_range(
        self,
        start: datetime,
        end: datetime,
        options: SearchOptions | None = None,
    ) -> SearchResult:
        """Memories created within [start, end], delegated to the record store."""
        start_time = time.time()
        options = options or SearchOptions(limit=self.settings.default_limit)

        matches = [m for m in self.store.find_by_date_range(start, end) if m.importance >= options.min_importance]
        hits = [
            SearchHit(memory=m, score=m.importance, sources=["date_range"])
            for m in matches[:options.limit]
        ]
        query_time_ms = round((time.time() - start_time) * 1000, 2)
        self.metrics.record("search_by_date_range", query_time_ms)
        return SearchResult(
            documents=hits,
            total_count=len(matches),
            query_time_ms=query_time_ms,
            strategy="date_range",
        )

    async def auto_complete(self, prefix: str, limit: int = 10) -> list[str]:
        """Indexed words starting with prefix, most frequent first."""
        start_time = time.time()
        words = self.inverted_index.prefix_lookup(prefix, clamp_limit(limit, 10, self.settings.max_limit))
        self.metrics.record("auto_complete", (time.time() - start_time) * 1000)
        return words

    async def similar_memories(self, content: str, limit: int = 5, threshold: float = 0.7) -> list[SearchHit]:
        """Memories whose TF-IDF vector has cosine similarity >= threshold with content."""
        async with self._lock:
            query_vector = self.vectors.query_vector(tokenize(content))
            if query_vector.norm == 0:
                return []
            scored = [
                (document_id, cosine_similarity(query_vector, vector))
                for document_id, vector in self.vectors.items()
            ]

        scored = sorted(
            ((doc, sim) for doc, sim in scored if sim >= threshold),
            key=lambda item: (-item[1], item[0]),
        )[:limit]
        memories = {m.id: m for m in self.store.fetch_by_ids([doc for doc, _ in scored])}
        return [
            SearchHit(memory=memories[doc], score=sim, sources=[SearchStrategy.SEMANTIC.value])
            for doc, sim in scored
            if doc in memories
        ]

    async def suggest(self, word: str, limit: int = 5) -> list[str]:
        """Spelling suggestions for a single word from the trigram index."""
        tokens = tokenize(word)
        if not tokens:
            return []
        return self.trigram_index.suggest(tokens[0], limit)

    async def query_suggestions(self, query: str = "", limit: int = 10) -> list[str]:
        """Completions for a partial query.

        Popular past queries containing the fragment come first, then frequent
        indexed words containing it. Duplicates keep their first position.
        """
        start_time = time.time()
        limit = clamp_limit(limit, 10, self.settings.max_limit)
        fragment = normalize_query(query)
        suggestions = list(dict.fromkeys(
            self.metrics.popular_queries(fragment, limit)
            + self.inverted_index.frequent_words(fragment, limit)
        ))[:limit]
        self.metrics.record("query_suggestions", (time.time() - start_time) * 1000)
        return suggestions

    # ============== Introspection ==============

    def cache_stats(self) -> CacheStats:
        self.cache.purge_expired()
        return CacheStats(
            size=len(self.cache),
            max_size=self.cache.max_size,
            ttl=self.cache.ttl,
            evictions=self.cache.evictions,
            hit_rates=self.metrics.hit_rates(),
        )

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("cache_cleared")

    def stats(self) -> dict:
        return {
            "memories": len(self.store),
            "indexed_documents": len(self.vectors),
            "words": self.inverted_index.word_count,
            "trigrams": self.trigram_index.trigram_count,
            "cache": self.cache_stats().model_dump(),
            "performance": self.metrics.snapshot().model_dump(mode="json"),
        }
