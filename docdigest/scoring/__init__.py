"""Document scoring and category strategies."""

from __future__ import annotations

from .categories import CategoryDistribution, CategoryStrategyProvider
from .scorer import DocumentScorer, ScoreBreakdown, ScoreResult, explain

__all__ = [
    "CategoryDistribution",
    "CategoryStrategyProvider",
    "DocumentScorer",
    "ScoreBreakdown",
    "ScoreResult",
    "explain",
]
