"""
Hybrid ranking for Memory Search MCP Server.

Merges the rankings of the exact, fuzzy and semantic strategies into a single
weighted ranking.
"""

from collections.abc import Mapping

from .config import STRATEGY_WEIGHTS
from .models import RankedDocument, SearchStrategy
from .strategies import Ranking


def to_ranked(strategy: SearchStrategy, ranking: Ranking) -> list[RankedDocument]:
    """Wrap a single strategy's ranking without reweighting it."""
    return [
        RankedDocument(document_id=document_id, score=score, sources=[strategy.value])
        for document_id, score in ranking
    ]


class HybridRanker:
    """Weighted additive merge of strategy rankings.

    final[doc] = sum(weight[strategy] * score[strategy][doc]); a document
    missing from a strategy's ranking contributes 0 for that strategy.
    """

    def __init__(self, weights: Mapping[SearchStrategy, float] | None = None):
        self.weights = dict(weights or STRATEGY_WEIGHTS)

    def merge(self, rankings: Mapping[SearchStrategy, Ranking]) -> list[RankedDocument]:
        scores: dict[str, float] = {}
        sources: dict[str, list[str]] = {}

        for strategy in (SearchStrategy.EXACT, SearchStrategy.FUZZY, SearchStrategy.SEMANTIC):
            weight = self.weights.get(strategy, 0.0)
            for document_id, score in rankings.get(strategy, []):
                scores[document_id] = scores.get(document_id, 0.0) + weight * score
                sources.setdefault(document_id, []).append(strategy.value)

        merged = [
            RankedDocument(document_id=document_id, score=score, sources=sources[document_id])
            for document_id, score in scores.items()
        ]
        merged.sort(key=lambda doc: (-doc.score, doc.document_id))
        return merged

    def combine(self, exact: Ranking, fuzzy: Ranking, semantic: Ranking) -> list[RankedDocument]:
        return self.merge({
            SearchStrategy.EXACT: exact,
            SearchStrategy.FUZZY: fuzzy,
            SearchStrategy.SEMANTIC: semantic,
        })
