"""
Pydantic models for Memory Search MCP Server.

Contains data models for stored memories, index entities, search options and results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldType(str, Enum):
    """Field of a memory that a word posting was extracted from."""

    CONTENT = "content"
    METADATA = "metadata"
    TAGS = "tags"


class SearchStrategy(str, Enum):
    """Search strategy selectable by callers."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class IndexErrorKind(str, Enum):
    """Kind of failure encountered while indexing a document."""

    TOKENIZE_FAILURE = "tokenize_failure"
    STORAGE_WRITE_FAILURE = "storage_write_failure"
    VECTOR_FAILURE = "vector_failure"


class Memory(BaseModel):
    """Model for a stored memory record."""

    id: str
    content: str
    type: str = "memory"
    metadata: dict[str, Any] = Field(default_factory=dict)
    importance: float = 0.5
    access_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    last_accessed: datetime = Field(default_factory=_utcnow)


class Posting(BaseModel):
    """Model for a word posting in the inverted index."""

    word: str
    document_id: str
    frequency: int
    field: FieldType


class TrigramPosting(BaseModel):
    """Model for a trigram posting in the trigram index."""

    trigram: str
    document_id: str
    word: str
    position: int


class TfIdfVector(BaseModel):
    """Model for a document's sparse TF-IDF vector."""

    document_id: str
    term_frequencies: dict[str, float]
    terms: dict[str, float]
    norm: float


class SearchOptions(BaseModel):
    """Options accepted by SearchService.search."""

    strategy: SearchStrategy = SearchStrategy.HYBRID
    limit: int = Field(default=10, ge=1)
    min_importance: float = Field(default=0.0, ge=0.0, le=1.0)
    fields: list[FieldType] | None = None


class RankedDocument(BaseModel):
    """Model for one entry of a merged ranking."""

    document_id: str
    score: float
    sources: list[str]


class SearchHit(BaseModel):
    """Model for a materialised search hit."""

    memory: Memory
    score: float
    sources: list[str]


class SearchResult(BaseModel):
    """Model for the result of a search call."""

    documents: list[SearchHit]
    total_count: int
    query_time_ms: float
    strategy: str
    fallback: bool = False


class IndexResult(BaseModel):
    """Model for the outcome of indexing a single document."""

    document_id: str
    error: IndexErrorKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


class RebuildResult(BaseModel):
    """Model for the outcome of a full index rebuild."""

    rebuilt: int
    errors: int


class CacheStats(BaseModel):
    """Model for result cache statistics."""

    size: int
    max_size: int
    ttl: float
    evictions: int
    hit_rates: dict[str, dict[str, int]]


class PerformanceMetrics(BaseModel):
    """Model for aggregated per-operation performance metrics."""

    operation_counts: dict[str, int]
    average_latencies: dict[str, float]
    cache_hit_rates: dict[str, dict[str, int]]
    last_reset: datetime


class CacheEntry(BaseModel):
    """Model for a result cache entry."""

    key: str
    value: Any
    expires_at: float
