# Memory Search MCP Server
#
# Modular package structure:
# - config.py: Settings and fixed weight tables
# - logging.py: structlog configuration
# - models.py: Pydantic models for records, postings, vectors and results
# - utils.py: Exceptions, validation, deadlines and importance scoring
# - tokenizer.py: Text normalisation into index terms
# - inverted_index.py: Word postings and prefix trie for autocomplete
# - trigram_index.py: Trigram postings, edit distance and similarity
# - vector_store.py: TF-IDF vectors and cosine similarity
# - strategies.py: Exact, fuzzy and semantic executors
# - ranking.py: Hybrid ranker merging strategy outputs
# - cache.py: Bounded TTL result cache
# - metrics.py: Per-operation performance tracking
# - store.py: In-memory record store with JSON persistence
# - search.py: SearchService facade
# - tools.py: MCP tool handlers
# - main.py: Entry point and server initialization
