"""Per-category selection strategies."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..config import CATEGORIES, CategoryConfig, EngineConfig
from ..models import DocumentMetadata


@dataclass
class CategoryDistribution:
    """How one category is represented in a document collection."""

    category: str
    count: int
    average_priority: float
    common_tags: List[str] = field(default_factory=list)


class CategoryStrategyProvider:
    """Supplies category defaults (tags, characteristics, budget shares) to scoring and selection."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config

    def strategy_for(self, category: str) -> CategoryConfig:
        return self.config.category(category)

    def category_priority(self, category: str) -> int:
        return self.strategy_for(category).priority

    def budget_shares(self) -> Dict[str, float]:
        """Normalized fraction of the budget each category should receive."""
        raw = {name: max(self.strategy_for(name).ideal_share, 0.0) for name in CATEGORIES}
        total = sum(raw.values())
        if total <= 0:
            return {name: 1.0 / len(CATEGORIES) for name in CATEGORIES}
        return {name: share / total for name, share in raw.items()}

    def matches_required_characteristics(self, document: DocumentMetadata) -> bool:
        # A characteristic is met when some tag contains its leading segment.
        tags = document.all_tags
        for characteristic in self.strategy_for(document.category).required_characteristics:
            stem = characteristic.split("-")[0]
            if not any(stem in tag for tag in tags):
                return False
        return True

    def synergy_count(self, document: DocumentMetadata) -> int:
        tags = set(document.all_tags)
        groups = self.strategy_for(document.category).synergistic_tags
        return sum(1 for group in groups if tags.issuperset(group))

    def avoided_count(self, document: DocumentMetadata) -> int:
        tags = set(document.all_tags)
        groups = self.strategy_for(document.category).avoid_combinations
        return sum(1 for group in groups if tags.issuperset(group))

    def analyze_distribution(self, documents: Iterable[DocumentMetadata]) -> Dict[str, CategoryDistribution]:
        grouped: Dict[str, List[DocumentMetadata]] = {}
        for document in documents:
            grouped.setdefault(document.category, []).append(document)

        report: Dict[str, CategoryDistribution] = {}
        for category in sorted(grouped):
            members: Sequence[DocumentMetadata] = grouped[category]
            tag_counts = Counter(tag for member in members for tag in member.tags.primary)
            common = [tag for tag, _ in sorted(tag_counts.items(), key=lambda item: (-item[1], item[0]))[:5]]
            report[category] = CategoryDistribution(
                category=category,
                count=len(members),
                average_priority=sum(member.priority_score for member in members) / len(members),
                common_tags=common,
            )
        return report


__all__ = ["CategoryDistribution", "CategoryStrategyProvider"]
