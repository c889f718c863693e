"""Budget-constrained document selection."""

from __future__ import annotations

from .selector import (
    AdaptiveDocumentSelector,
    ExcludedCandidate,
    SelectionAnalysis,
    SelectionOptimization,
    SelectionOptions,
    SelectionResult,
    select_documents,
)
from .strategies import STRATEGIES, Candidate, StrategyInputs

__all__ = [
    "AdaptiveDocumentSelector",
    "Candidate",
    "ExcludedCandidate",
    "STRATEGIES",
    "SelectionAnalysis",
    "SelectionOptimization",
    "SelectionOptions",
    "SelectionResult",
    "StrategyInputs",
    "select_documents",
]
