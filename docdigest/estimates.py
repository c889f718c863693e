"""Selection-phase size estimates for documents."""

from __future__ import annotations

from typing import Iterable

from .models import DocumentMetadata

CHARACTERS_PER_WORD = 5

_CATEGORY_BASE = {
    "guide": 1500,
    "api": 800,
    "concept": 1200,
    "example": 1000,
    "reference": 600,
    "llms": 400,
}

_COMPLEXITY_MULTIPLIER = {
    "basic": 0.8,
    "intermediate": 1.0,
    "advanced": 1.3,
    "expert": 1.6,
}


def estimate_characters(document: DocumentMetadata) -> int:
    """Estimate rendered size; word counts win over the category heuristic."""
    if document.word_count:
        return document.word_count * CHARACTERS_PER_WORD
    base = _CATEGORY_BASE.get(document.category, 1000)
    multiplier = _COMPLEXITY_MULTIPLIER.get(document.tags.complexity or "intermediate", 1.0)
    return round(base * multiplier)


def estimate_total(documents: Iterable[DocumentMetadata]) -> int:
    return sum(estimate_characters(document) for document in documents)


__all__ = ["CHARACTERS_PER_WORD", "estimate_characters", "estimate_total"]
