"""Budget-constrained selection strategies over scored candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Set

from ..config import CATEGORIES
from ..models import DocumentMetadata
from ..scoring.scorer import ScoreResult


@dataclass
class Candidate:
    """A scored document with its selection-phase size estimate."""

    document: DocumentMetadata
    score: ScoreResult
    size: int

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def category(self) -> str:
        return self.document.category


@dataclass
class StrategyInputs:
    budget: int
    shares: Mapping[str, float] = field(default_factory=dict)
    max_per_category: int = 2


class _Knapsack:
    """Running selection; each pass stops at the first candidate that overflows its allowance."""

    def __init__(self, budget: int) -> None:
        self.budget = budget
        self.used = 0
        self.chosen: List[Candidate] = []
        self._ids: Set[str] = set()

    @property
    def remaining(self) -> int:
        return self.budget - self.used

    def has(self, candidate: Candidate) -> bool:
        return candidate.id in self._ids

    def fits(self, candidate: Candidate, allowance: int | None = None) -> bool:
        limit = self.remaining if allowance is None else min(allowance, self.remaining)
        return candidate.size <= limit

    def take(self, candidate: Candidate) -> None:
        self.chosen.append(candidate)
        self._ids.add(candidate.id)
        self.used += candidate.size

    def fill(self, ordered: Iterable[Candidate]) -> None:
        for candidate in ordered:
            if self.has(candidate):
                continue
            if not self.fits(candidate):
                break
            self.take(candidate)


def by_score(candidates: Iterable[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda item: (-item.score.total, item.id))


def greedy(candidates: List[Candidate], inputs: StrategyInputs) -> List[Candidate]:
    sack = _Knapsack(inputs.budget)
    sack.fill(by_score(candidates))
    return sack.chosen


def balanced(candidates: List[Candidate], inputs: StrategyInputs) -> List[Candidate]:
    sack = _Knapsack(inputs.budget)
    ordered = by_score(candidates)
    for category in CATEGORIES:
        allowance = int(inputs.budget * inputs.shares.get(category, 0.0))
        spent = 0
        for candidate in ordered:
            if candidate.category != category:
                continue
            if not sack.fits(candidate, allowance - spent):
                break
            sack.take(candidate)
            spent += candidate.size
    sack.fill(ordered)
    return sack.chosen


def quality_focused(candidates: List[Candidate], inputs: StrategyInputs) -> List[Candidate]:
    sack = _Knapsack(inputs.budget)
    ordered = sorted(
        candidates,
        key=lambda item: (
            -item.document.priority_score,
            -item.score.breakdown.tag_alignment,
            -item.score.confidence,
            item.id,
        ),
    )
    sack.fill(ordered)
    return sack.chosen


def diverse(candidates: List[Candidate], inputs: StrategyInputs) -> List[Candidate]:
    sack = _Knapsack(inputs.budget)
    ordered = by_score(candidates)
    buckets: Dict[str, List[Candidate]] = {}
    for candidate in ordered:
        buckets.setdefault(candidate.category, []).append(candidate)
    # Categories take turns, strongest leader first.
    rotation = sorted(buckets, key=lambda name: (-buckets[name][0].score.total, name))

    exhausted = False
    for round_index in range(max(inputs.max_per_category, 0)):
        for category in rotation:
            bucket = buckets[category]
            if round_index >= len(bucket):
                continue
            candidate = bucket[round_index]
            if not sack.fits(candidate):
                exhausted = True
                break
            sack.take(candidate)
        if exhausted:
            break
    sack.fill(ordered)
    return sack.chosen


Strategy = Callable[[List[Candidate], StrategyInputs], List[Candidate]]

STRATEGIES: Mapping[str, Strategy] = {
    "greedy": greedy,
    "balanced": balanced,
    "quality-focused": quality_focused,
    "diverse": diverse,
}


__all__ = [
    "Candidate",
    "STRATEGIES",
    "Strategy",
    "StrategyInputs",
    "balanced",
    "by_score",
    "diverse",
    "greedy",
    "quality_focused",
]
