"""
Performance tracking for Memory Search MCP Server.

Keeps running per-operation counts, average latencies and cache hit rates,
plus how often each query text has been searched.
"""

from datetime import datetime, timezone

from .models import PerformanceMetrics


class PerformanceTracker:
    """Accumulates latency and cache-hit figures per operation name."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._counts: dict[str, int] = {}
        self._average_latencies: dict[str, float] = {}
        self._hit_rates: dict[str, dict[str, int]] = {}
        # query text -> [times searched, sequence number of the latest search]
        self._queries: dict[str, list[int]] = {}
        self._query_sequence = 0
        self._last_reset = datetime.now(timezone.utc)

    def record(self, operation: str, latency_ms: float, cache_hit: bool = False) -> None:
        count = self._counts.get(operation, 0) + 1
        self._counts[operation] = count

        previous = self._average_latencies.get(operation, 0.0)
        self._average_latencies[operation] = (previous * (count - 1) + latency_ms) / count

        rate = self._hit_rates.setdefault(operation, {"hits": 0, "total": 0})
        rate["total"] += 1
        if cache_hit:
            rate["hits"] += 1

    def record_query(self, query: str) -> None:
        """Count one search for a normalized query text."""
        if not query:
            return
        self._query_sequence += 1
        entry = self._queries.setdefault(query, [0, 0])
        entry[0] += 1
        entry[1] = self._query_sequence

    def popular_queries(self, fragment: str = "", limit: int = 10) -> list[str]:
        """Past queries containing fragment, most searched first, then most recent.

        The fragment itself is never returned.
        """
        ranked = sorted(
            (
                (-count, -last_seen, query)
                for query, (count, last_seen) in self._queries.items()
                if fragment in query and query != fragment
            ),
        )
        return [query for _, _, query in ranked[:limit]]

    def hit_rates(self) -> dict[str, dict[str, int]]:
        return {operation: dict(rate) for operation, rate in self._hit_rates.items()}

    def snapshot(self) -> PerformanceMetrics:
        return PerformanceMetrics(
            operation_counts=dict(self._counts),
            average_latencies={op: round(avg, 3) for op, avg in self._average_latencies.items()},
            cache_hit_rates=self.hit_rates(),
            last_reset=self._last_reset,
        )
