"""Conflict rules, detection and resolution."""

from __future__ import annotations

from .detector import (
    Conflict,
    ConflictAnalysisResult,
    ConflictApplication,
    ConflictDetectionOptions,
    ConflictDetector,
    ConflictSummary,
    ExcludedDocument,
    ModifiedDocument,
    Recommendation,
    ResolutionStep,
)
from .rules import (
    BUILTIN_RULES,
    ConflictImpact,
    ConflictKind,
    ConflictResolution,
    ConflictRule,
    ResolutionAction,
    Severity,
    builtin_rules,
    similarity,
)

__all__ = [
    "BUILTIN_RULES",
    "Conflict",
    "ConflictAnalysisResult",
    "ConflictApplication",
    "ConflictDetectionOptions",
    "ConflictDetector",
    "ConflictImpact",
    "ConflictKind",
    "ConflictResolution",
    "ConflictRule",
    "ConflictSummary",
    "ExcludedDocument",
    "ModifiedDocument",
    "Recommendation",
    "ResolutionAction",
    "ResolutionStep",
    "Severity",
    "builtin_rules",
    "similarity",
]
