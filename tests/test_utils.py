"""
Tests for utilities, performance tracking and settings.
"""

import pytest


# ============== Tests for Deadline ==============

class TestDeadline:
    """Tests for the Deadline class."""

    def test_not_expired_within_budget(self, clock):
        from memory_search.utils import Deadline

        deadline = Deadline(100, clock=clock)
        clock.advance(0.1)

        assert not deadline.expired
        deadline.check()

    def test_expired_after_budget(self, clock):
        from memory_search.utils import Deadline, SearchDeadlineExceeded

        deadline = Deadline(100, clock=clock)
        clock.advance(0.2)

        assert deadline.expired
        with pytest.raises(SearchDeadlineExceeded):
            deadline.check()

    def test_no_budget_never_expires(self, clock):
        from memory_search.utils import Deadline

        deadline = Deadline(None, clock=clock)
        clock.advance(10_000)

        assert not deadline.expired


# ============== Tests for validation helpers ==============

class TestValidateContentSize:
    """Tests for validate_content_size()."""

    def test_valid(self):
        from memory_search.utils import validate_content_size

        assert validate_content_size("hello", 10) == "hello"

    def test_empty(self):
        from memory_search.utils import ContentValidationError, validate_content_size

        with pytest.raises(ContentValidationError, match="empty"):
            validate_content_size("  \n", 10)

    def test_multibyte_counts_bytes(self):
        """Test the limit applies to UTF-8 bytes, not characters."""
        from memory_search.utils import ContentValidationError, validate_content_size

        with pytest.raises(ContentValidationError, match="exceeds"):
            validate_content_size("é" * 6, 10)


class TestClampLimit:
    """Tests for clamp_limit()."""

    def test_default(self):
        from memory_search.utils import clamp_limit

        assert clamp_limit(None, 10, 100) == 10

    def test_bounds(self):
        from memory_search.utils import clamp_limit

        assert clamp_limit(0, 10, 100) == 1
        assert clamp_limit(-5, 10, 100) == 1
        assert clamp_limit(500, 10, 100) == 100
        assert clamp_limit(25, 10, 100) == 25


# ============== Tests for calculate_importance() ==============

class TestCalculateImportance:
    """Tests for the importance heuristic."""

    def test_baseline(self):
        from memory_search.utils import calculate_importance

        assert calculate_importance("note", {}) == pytest.approx(0.5)

    def test_length_bonus(self):
        from memory_search.utils import calculate_importance

        assert calculate_importance("x" * 101, {}) == pytest.approx(0.6)
        assert calculate_importance("x" * 501, {}) == pytest.approx(0.7)

    def test_keywords_case_insensitive(self):
        from memory_search.utils import calculate_importance

        assert calculate_importance("CRITICAL and Vital", {}) == pytest.approx(0.6)

    def test_tags_must_be_a_list(self):
        from memory_search.utils import calculate_importance

        assert calculate_importance("note", {"tags": "important"}) == pytest.approx(0.5)


# ============== Tests for PerformanceTracker ==============

class TestPerformanceTracker:
    """Tests for per-operation metrics."""

    def test_running_average(self):
        from memory_search.metrics import PerformanceTracker

        tracker = PerformanceTracker()
        tracker.record("search_exact", 10.0)
        tracker.record("search_exact", 20.0, cache_hit=True)
        tracker.record("auto_complete", 1.0)

        snapshot = tracker.snapshot()

        assert snapshot.operation_counts == {"search_exact": 2, "auto_complete": 1}
        assert snapshot.average_latencies["search_exact"] == pytest.approx(15.0)
        assert snapshot.cache_hit_rates["search_exact"] == {"hits": 1, "total": 2}

    def test_reset(self):
        from memory_search.metrics import PerformanceTracker

        tracker = PerformanceTracker()
        tracker.record("search_exact", 10.0)
        tracker.record_query("fox")
        tracker.reset()

        assert tracker.snapshot().operation_counts == {}
        assert tracker.popular_queries() == []

    def test_popular_queries_by_count_then_recency(self):
        """Test more frequent queries rank first and ties go to the latest."""
        from memory_search.metrics import PerformanceTracker

        tracker = PerformanceTracker()
        for query in ["fox den", "fox tail", "fox den", "red fox", "fox"]:
            tracker.record_query(query)

        assert tracker.popular_queries("fox") == ["fox den", "red fox", "fox tail"]
        assert tracker.popular_queries("fox", limit=1) == ["fox den"]
        assert tracker.popular_queries("tail") == ["fox tail"]

    def test_empty_query_not_recorded(self):
        from memory_search.metrics import PerformanceTracker

        tracker = PerformanceTracker()
        tracker.record_query("")

        assert tracker.popular_queries() == []


# ============== Tests for Settings ==============

class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        from memory_search.config import Settings

        monkeypatch.delenv("MEMORY_CACHE_MAX_SIZE", raising=False)
        settings = Settings()

        assert settings.cache_max_size == 1000
        assert settings.cache_ttl == 300.0
        assert settings.fuzzy_threshold == 0.3
        assert settings.data_path.name == "memories.json"

    def test_env_override(self, monkeypatch, tmp_path):
        from memory_search.config import Settings

        monkeypatch.setenv("MEMORY_CACHE_MAX_SIZE", "5")
        monkeypatch.setenv("MEMORY_DATA_PATH", str(tmp_path / "data.json"))

        settings = Settings()

        assert settings.cache_max_size == 5
        assert settings.data_path == tmp_path / "data.json"

    def test_strategy_weights_sum_to_one(self):
        from memory_search.config import STRATEGY_WEIGHTS

        assert sum(STRATEGY_WEIGHTS.values()) == pytest.approx(1.0)


# ============== Tests for configure_logging() ==============

class TestConfigureLogging:
    """Tests for structlog configuration."""

    def test_level_name_and_stderr(self, capsys):
        """Test a level name filters lower levels and output stays off stdout."""
        import structlog

        from memory_search.logging import configure_logging

        configure_logging("warning")
        try:
            logger = structlog.get_logger("test")
            logger.info("hidden_event")
            logger.warning("shown_event", detail="x")
        finally:
            structlog.reset_defaults()

        captured = capsys.readouterr()
        assert "shown_event" in captured.err
        assert "hidden_event" not in captured.err
        assert captured.out == ""
