"""
Pytest configuration and fixtures for memory-search tests.
"""

import pytest


class FakeClock:
    """Manually advanced clock for TTL and deadline tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStats:
    """Importance/access-count lookup backed by a dict."""

    def __init__(self, stats: dict[str, tuple[float, int]]):
        self.stats = stats

    def document_importance(self, document_id: str) -> float | None:
        entry = self.stats.get(document_id)
        return None if entry is None else entry[0]

    def document_access_count(self, document_id: str) -> int:
        entry = self.stats.get(document_id)
        return 0 if entry is None else entry[1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_stats():
    return FakeStats


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary data file with a generous deadline."""
    from memory_search.config import Settings

    return Settings(data_path=tmp_path / "memories.json", search_deadline_ms=60_000)


@pytest.fixture
def store(settings):
    """A MemoryStore that does not write to disk on every change."""
    from memory_search.store import MemoryStore

    return MemoryStore(settings.data_path, max_content_size=settings.max_content_size, autosave=False)


@pytest.fixture
async def service(store, settings):
    """An initialized SearchService over an empty store."""
    from memory_search.search import SearchService

    search_service = SearchService(store, settings)
    await search_service.init()
    yield search_service
    await search_service.shutdown()


@pytest.fixture
async def fox_id(service):
    """Id of the 'quick brown fox' memory."""
    return await service.store.add_memory("The quick brown fox jumps over the lazy dog")
