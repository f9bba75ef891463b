"""
Configuration module for Memory Search MCP Server.

Uses pydantic-settings for configuration management with environment variable support.
Environment variables use MEMORY_ prefix (e.g., MEMORY_DATA_PATH).
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import FieldType, SearchStrategy


def _get_default_data_path() -> Path:
    """Get default persistence path for the record store."""
    return Path.home() / ".memory-search" / "memories.json"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Environment variables:
    - MEMORY_DATA_PATH: Path to the JSON file backing the record store
    - MEMORY_LOG_LEVEL: Minimum log level (default: INFO)
    - MEMORY_CACHE_MAX_SIZE: Maximum number of cached search results
    - MEMORY_CACHE_TTL: Cache TTL in seconds
    - MEMORY_DEFAULT_LIMIT: Default number of search results
    - MEMORY_MAX_LIMIT: Largest accepted result limit
    - MEMORY_FUZZY_THRESHOLD: Minimum trigram similarity for fuzzy matches
    - MEMORY_FUZZY_MAX_EDITS: Edit distance accepted for short fuzzy matches
    - MEMORY_SEMANTIC_THRESHOLD: Minimum cosine similarity for semantic matches
    - MEMORY_SEARCH_DEADLINE_MS: Default time budget for one search call
    - MEMORY_IDF_REFRESH_RATIO: Corpus size drift that triggers vector reweighting
    - MEMORY_MAX_CONTENT_SIZE: Maximum content size in bytes
    """

    data_path: Path = Field(default_factory=_get_default_data_path)
    log_level: str = "INFO"
    cache_max_size: int = 1000
    cache_ttl: float = 300.0
    default_limit: int = 10
    max_limit: int = 100
    fuzzy_threshold: float = 0.3
    fuzzy_max_edits: int = 2
    semantic_threshold: float = 0.1
    search_deadline_ms: int = 2000
    idf_refresh_ratio: float = 0.2
    max_content_size: int = 1 * 1024 * 1024  # 1MB in bytes

    model_config = SettingsConfigDict(env_prefix="MEMORY_")


# Weights used by the hybrid ranker
STRATEGY_WEIGHTS: dict[SearchStrategy, float] = {
    SearchStrategy.EXACT: 0.4,
    SearchStrategy.FUZZY: 0.3,
    SearchStrategy.SEMANTIC: 0.3,
}

# Weights used by multi-field search
FIELD_WEIGHTS: dict[FieldType, float] = {
    FieldType.CONTENT: 1.0,
    FieldType.METADATA: 0.7,
    FieldType.TAGS: 0.8,
}
