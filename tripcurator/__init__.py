"""
Trip Curator: nearby place recommendations.

Pipeline:
- aggregate_candidates: per-category search fan-out, merged and deduplicated.
- rerank: AI scoring over the pool, falling back to the input order.
- rebalance: category-fair final ordering with pinned top picks.
"""

from .llm.rerank import rerank
from .recommendations.rebalance import rebalance
from .search.aggregator import aggregate_candidates

__all__ = ["aggregate_candidates", "rebalance", "rerank"]
