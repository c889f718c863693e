"""Dependency graph expansion."""

from __future__ import annotations

from .resolver import (
    OPTIONAL_RELATIONS,
    AddedDependency,
    ConflictExclusion,
    DependencyResolution,
    DependencyResolver,
    ResolutionOptions,
)

__all__ = [
    "AddedDependency",
    "ConflictExclusion",
    "DependencyResolution",
    "DependencyResolver",
    "OPTIONAL_RELATIONS",
    "ResolutionOptions",
]
