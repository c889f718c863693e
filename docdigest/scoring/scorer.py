"""Multi-factor relevance scoring for candidate documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..config import EngineConfig, StrategyConfig, default_config
from ..logging import get_logger
from ..models import DocumentError, DocumentMetadata, SelectionContext
from .categories import CategoryStrategyProvider

SECONDARY_TAG_FACTOR = 0.7
NEUTRAL_ALIGNMENT = 0.5
SYNERGY_BONUS = 0.1
AVOID_PENALTY = 0.2

_PREREQUISITE_WEIGHT = 0.4
_COMPLEMENT_STEP = 0.2
_COMPLEMENT_CAP = 0.4
_CONFLICT_PENALTY = 0.3

_CONFIDENCE_PENALTIES = (
    ("primary tags", 0.3),
    ("secondary tags", 0.1),
    ("composition affinities", 0.2),
    ("quality metrics", 0.2),
    ("keywords", 0.1),
)


@dataclass
class ScoreBreakdown:
    """Unweighted factor values, each in [0, 1] except the category bonus."""

    priority: float
    tag_alignment: float
    dependency_relevance: float
    category_bonus: float


@dataclass
class ScoreResult:
    """Score of one document against one selection context."""

    document_id: str
    total: float
    breakdown: ScoreBreakdown
    confidence: float
    reasons: List[str] = field(default_factory=list)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class DocumentScorer:
    """Weighted sum of priority, tag alignment, dependency relevance and a category bonus."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        strategy: str | None = None,
        categories: CategoryStrategyProvider | None = None,
    ) -> None:
        self.config = config or default_config()
        self.strategy: StrategyConfig = self.config.strategy(strategy)
        self.categories = categories or CategoryStrategyProvider(self.config)
        self.logger = get_logger("scoring")

    def score(self, document: DocumentMetadata, context: SelectionContext) -> ScoreResult:
        strategy = self.strategy
        priority = _clamp(document.priority_score / 100.0)
        alignment = self.tag_alignment(document, context)
        relevance = self.dependency_relevance(document, context)
        bonus = strategy.category_bonus if self.categories.matches_required_characteristics(document) else 0.0

        total = _clamp(
            strategy.priority_weight * priority
            + strategy.tag_weight * alignment
            + strategy.dependency_weight * relevance
            + bonus
        )

        reasons = [f"priority {document.priority_score:g}/100 ({document.priority.tier})"]
        matched = [tag for tag in context.target_tags if tag in document.all_tags]
        if matched:
            reasons.append("matched tags: " + ", ".join(matched))
        if relevance > 0:
            reasons.append(f"dependency relevance {relevance:.2f}")
        if bonus:
            reasons.append(f"meets {document.category} characteristics")

        return ScoreResult(
            document_id=document.id,
            total=total,
            breakdown=ScoreBreakdown(
                priority=priority,
                tag_alignment=alignment,
                dependency_relevance=relevance,
                category_bonus=bonus,
            ),
            confidence=self.confidence(document),
            reasons=reasons,
        )

    def score_many(
        self, documents: Iterable[DocumentMetadata], context: SelectionContext
    ) -> Tuple[List[ScoreResult], List[DocumentError]]:
        """Score a batch, recording per-document failures instead of raising."""
        results: List[ScoreResult] = []
        errors: List[DocumentError] = []
        for document in documents:
            try:
                results.append(self.score(document, context))
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Scoring failed for %s: %s", document.id, exc)
                errors.append(DocumentError(document.id, "scoring", str(exc)))
        return results, errors

    def tag_alignment(self, document: DocumentMetadata, context: SelectionContext) -> float:
        targets = {tag: weight for tag, weight in context.target_tags.items() if weight > 0}
        if targets:
            primary = set(document.tags.primary)
            secondary = set(document.tags.secondary)
            matched = 0.0
            for tag, weight in targets.items():
                if tag in primary:
                    matched += weight
                elif tag in secondary:
                    matched += weight * SECONDARY_TAG_FACTOR
            alignment = matched / sum(targets.values())
        else:
            alignment = NEUTRAL_ALIGNMENT

        alignment += SYNERGY_BONUS * self.categories.synergy_count(document)
        alignment -= AVOID_PENALTY * self.categories.avoided_count(document)
        return _clamp(alignment)

    def dependency_relevance(self, document: DocumentMetadata, context: SelectionContext) -> float:
        selected = context.selected_ids
        if not selected:
            return 0.0
        relations = document.dependencies
        relevance = 0.0
        prerequisites = relations.targets("prerequisites")
        if prerequisites:
            satisfied = sum(1 for target in prerequisites if target in selected)
            relevance += _PREREQUISITE_WEIGHT * satisfied / len(prerequisites)
        complements = sum(1 for target in relations.targets("complements") if target in selected)
        relevance += min(_COMPLEMENT_STEP * complements, _COMPLEMENT_CAP)
        conflicts = sum(1 for target in relations.targets("conflicts") if target in selected)
        relevance -= _CONFLICT_PENALTY * conflicts
        return _clamp(relevance)

    def confidence(self, document: DocumentMetadata) -> float:
        present = {
            "primary tags": bool(document.tags.primary),
            "secondary tags": bool(document.tags.secondary),
            "composition affinities": document.composition is not None,
            "quality metrics": document.quality is not None,
            "keywords": bool(document.keywords),
        }
        confidence = 1.0
        for name, penalty in _CONFIDENCE_PENALTIES:
            if not present[name]:
                confidence -= penalty
        return round(_clamp(confidence), 4)


def explain(result: ScoreResult, *, strategy: Optional[StrategyConfig] = None) -> str:
    """One-line human summary of a score, for audit logs."""
    parts = [f"{result.document_id}: {result.total:.3f} (confidence {result.confidence:.2f})"]
    b = result.breakdown
    if strategy is not None:
        parts.append(
            f"priority {strategy.priority_weight:g}x{b.priority:.2f}"
            f" + tags {strategy.tag_weight:g}x{b.tag_alignment:.2f}"
            f" + deps {strategy.dependency_weight:g}x{b.dependency_relevance:.2f}"
            f" + bonus {b.category_bonus:.2f}"
        )
    return " ".join(parts)


__all__ = ["DocumentScorer", "ScoreBreakdown", "ScoreResult", "explain"]
