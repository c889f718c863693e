"""Digest composition within a hard character budget."""

from __future__ import annotations

from .composer import (
    SEPARATOR,
    AdaptiveComposer,
    ComposedDocument,
    CompositionOptions,
    CompositionResult,
    CompositionSummary,
)
from .excerpts import build_excerpts, split_front_matter, truncate, with_excerpts
from .toc import TableOfContentsBuilder

__all__ = [
    "AdaptiveComposer",
    "ComposedDocument",
    "CompositionOptions",
    "CompositionResult",
    "CompositionSummary",
    "SEPARATOR",
    "TableOfContentsBuilder",
    "build_excerpts",
    "split_front_matter",
    "truncate",
    "with_excerpts",
]
