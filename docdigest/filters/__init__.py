"""Candidate filters applied ahead of scoring."""

from __future__ import annotations

from .tags import (
    ExclusionKind,
    TagCompatibilityFilter,
    TagExclusion,
    TagFilterCriteria,
    TagFilterResult,
    TagFilterStatistics,
)

__all__ = [
    "ExclusionKind",
    "TagCompatibilityFilter",
    "TagExclusion",
    "TagFilterCriteria",
    "TagFilterResult",
    "TagFilterStatistics",
]
