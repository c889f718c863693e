"""Adaptive document selection: filter, resolve, de-conflict, score, then fill the budget."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import EngineConfig, StrategyConfig, default_config
from ..conflicts import (
    ConflictAnalysisResult,
    ConflictApplication,
    ConflictDetectionOptions,
    ConflictDetector,
)
from ..dependencies import DependencyResolution, DependencyResolver, ResolutionOptions
from ..estimates import estimate_characters
from ..filters import TagCompatibilityFilter, TagFilterCriteria, TagFilterResult
from ..logging import get_logger
from ..models import DocumentError, DocumentInput, DocumentMetadata, SelectionConstraints, parse_documents
from ..scoring import CategoryStrategyProvider, DocumentScorer, ScoreResult, explain
from .strategies import STRATEGIES, Candidate, StrategyInputs


@dataclass
class SelectionOptions:
    strategy: Optional[str] = None
    resolve_dependencies: bool = True
    dependency_options: Optional[ResolutionOptions] = None
    detect_conflicts: bool = True
    auto_resolve_conflicts: bool = True
    conflict_options: Optional[ConflictDetectionOptions] = None


@dataclass
class SelectionOptimization:
    quality_score: float
    strategy: str
    algorithm: str
    estimated_characters: int
    max_characters: int
    space_utilization: float
    diversity_score: float
    balance_score: float


@dataclass
class SelectionAnalysis:
    category_coverage: Dict[str, int] = field(default_factory=dict)
    tag_coverage: Dict[str, int] = field(default_factory=dict)
    audience_coverage: Dict[str, int] = field(default_factory=dict)
    complexity_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass
class ExcludedCandidate:
    document_id: str
    stage: str
    reason: str


@dataclass
class SelectionResult:
    selected_documents: List[DocumentMetadata]
    scores: Dict[str, ScoreResult]
    optimization: SelectionOptimization
    analysis: SelectionAnalysis
    sizes: Dict[str, int] = field(default_factory=dict)
    excluded: List[ExcludedCandidate] = field(default_factory=list)
    errors: List[DocumentError] = field(default_factory=list)
    filter_result: Optional[TagFilterResult] = None
    dependency_resolution: Optional[DependencyResolution] = None
    conflict_analysis: Optional[ConflictAnalysisResult] = None
    conflict_application: Optional[ConflictApplication] = None
    elapsed_seconds: float = 0.0

    @property
    def selected_ids(self) -> List[str]:
        return [document.id for document in self.selected_documents]

    def exclusion_for(self, document_id: str) -> Optional[ExcludedCandidate]:
        for item in self.excluded:
            if item.document_id == document_id:
                return item
        return None


class AdaptiveDocumentSelector:
    """Runs the tag filter, dependency resolver, conflict resolver and scorer, then a budget strategy."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        tag_filter: TagCompatibilityFilter | None = None,
        resolver: DependencyResolver | None = None,
        conflict_detector: ConflictDetector | None = None,
        scorer: DocumentScorer | None = None,
        categories: CategoryStrategyProvider | None = None,
    ) -> None:
        self.config = config or default_config()
        self.tag_filter = tag_filter or TagCompatibilityFilter(self.config)
        self.resolver = resolver or DependencyResolver(self.config)
        self.conflict_detector = conflict_detector or ConflictDetector(self.config)
        self.categories = categories or CategoryStrategyProvider(self.config)
        self._scorer = scorer
        self.logger = get_logger("selection")

    def select_documents(
        self,
        documents: Iterable[DocumentInput],
        constraints: SelectionConstraints,
        options: SelectionOptions | None = None,
    ) -> SelectionResult:
        options = options or SelectionOptions()
        strategy = self.config.strategy(options.strategy)
        started = time.perf_counter()

        parsed, errors = parse_documents(documents)
        for error in errors:
            self.logger.warning("Skipping record %s: %s", error.document_id, error.message)
        excluded: List[ExcludedCandidate] = []

        already = {document.id for document in constraints.selected_documents}
        pool = [document for document in parsed if document.id not in already]

        filter_result = self.tag_filter.filter(pool, self._criteria(constraints))
        errors.extend(filter_result.errors)
        excluded.extend(
            ExcludedCandidate(item.document.id, "tag-filter", item.reason) for item in filter_result.excluded
        )
        candidates = list(filter_result.filtered)

        resolution: Optional[DependencyResolution] = None
        if options.resolve_dependencies and candidates:
            resolution = self.resolver.resolve(
                candidates,
                options.dependency_options or ResolutionOptions.from_settings(self.config.dependencies),
            )
            excluded.extend(
                ExcludedCandidate(item.document.id, "dependencies", item.reason) for item in resolution.excluded
            )
            candidates = [document for document in resolution.resolved_documents if document.id not in already]

        analysis_result: Optional[ConflictAnalysisResult] = None
        application: Optional[ConflictApplication] = None
        if options.detect_conflicts and len(candidates) > 1:
            analysis_result = self.conflict_detector.detect_conflicts(candidates, options.conflict_options)
            if options.auto_resolve_conflicts and analysis_result.conflicts:
                application = self.conflict_detector.apply_conflict_resolutions(
                    candidates, analysis_result.conflicts
                )
                excluded.extend(
                    ExcludedCandidate(item.document.id, "conflicts", item.reason) for item in application.excluded
                )
                candidates = application.resolved_documents

        context = constraints.context()
        scorer = self._scorer_for(strategy)
        scores, score_errors = scorer.score_many(candidates, context)
        errors.extend(score_errors)
        score_map = {score.document_id: score for score in scores}

        scored: List[Candidate] = []
        sizes: Dict[str, int] = {}
        for document in candidates:
            score = score_map.get(document.id)
            if score is None:
                continue
            if constraints.quality_threshold is not None and score.total < constraints.quality_threshold:
                excluded.append(
                    ExcludedCandidate(
                        document.id,
                        "quality",
                        f"Score {score.total:.3f} below threshold {constraints.quality_threshold:.3f}",
                    )
                )
                continue
            size = estimate_characters(document)
            sizes[document.id] = size
            scored.append(Candidate(document, score, size))

        inputs = StrategyInputs(
            budget=max(constraints.max_characters, 0),
            shares=self.categories.budget_shares(),
            max_per_category=strategy.max_documents_per_category,
        )
        chosen = STRATEGIES[strategy.algorithm](scored, inputs)
        chosen_ids = {candidate.id for candidate in chosen}
        for candidate in scored:
            if candidate.id not in chosen_ids:
                excluded.append(
                    ExcludedCandidate(candidate.id, "budget", f"Estimated {candidate.size} characters did not fit")
                )
        for candidate in chosen:
            self.logger.debug("Selected %s", explain(candidate.score, strategy=strategy))

        selected = [candidate.document for candidate in chosen]
        result = SelectionResult(
            selected_documents=selected,
            scores=score_map,
            optimization=self._optimization(strategy, chosen, scored, constraints.max_characters),
            analysis=self.analyze(selected),
            sizes={candidate.id: candidate.size for candidate in chosen},
            excluded=excluded,
            errors=errors,
            filter_result=filter_result,
            dependency_resolution=resolution,
            conflict_analysis=analysis_result,
            conflict_application=application,
            elapsed_seconds=time.perf_counter() - started,
        )
        self.logger.info(
            "Selected %d of %d document(s) with %s (%d/%d characters, %d error(s))",
            len(selected),
            len(parsed),
            strategy.name,
            result.optimization.estimated_characters,
            constraints.max_characters,
            len(errors),
        )
        return result

    @staticmethod
    def analyze(documents: Sequence[DocumentMetadata]) -> SelectionAnalysis:
        categories = Counter(document.category for document in documents)
        tags = Counter(tag for document in documents for tag in document.all_tags)
        audiences = Counter(audience for document in documents for audience in set(document.tags.audience))
        complexity = Counter(document.tags.complexity for document in documents if document.tags.complexity)
        return SelectionAnalysis(
            category_coverage=dict(sorted(categories.items())),
            tag_coverage=dict(sorted(tags.items())),
            audience_coverage=dict(sorted(audiences.items())),
            complexity_distribution=dict(sorted(complexity.items())),
        )

    def _scorer_for(self, strategy: StrategyConfig) -> DocumentScorer:
        if self._scorer is not None and self._scorer.strategy.name == strategy.name:
            return self._scorer
        return DocumentScorer(self.config, strategy=strategy.name, categories=self.categories)

    @staticmethod
    def _criteria(constraints: SelectionConstraints) -> TagFilterCriteria:
        return TagFilterCriteria(
            required_tags=list(constraints.required_tags),
            excluded_tags=list(constraints.excluded_tags),
            target_audience=list(constraints.target_audience),
            filter_by_audience=constraints.filter_by_audience,
            strict_compatibility=constraints.strict_compatibility,
        )

    def _optimization(
        self,
        strategy: StrategyConfig,
        chosen: Sequence[Candidate],
        pool: Sequence[Candidate],
        max_characters: int,
    ) -> SelectionOptimization:
        used = sum(candidate.size for candidate in chosen)
        quality = sum(c.document.priority_score for c in chosen) / (100.0 * len(chosen)) if chosen else 0.0
        available = {candidate.category for candidate in pool}
        present = {candidate.category for candidate in chosen}
        diversity = len(present) / len(available) if available else 1.0

        balance = 1.0
        if used > 0:
            shares = self.categories.budget_shares()
            actual: Dict[str, float] = {}
            for candidate in chosen:
                actual[candidate.category] = actual.get(candidate.category, 0.0) + candidate.size / used
            drift = sum(abs(actual.get(name, 0.0) - share) for name, share in shares.items())
            balance = max(0.0, 1.0 - drift / 2.0)

        return SelectionOptimization(
            quality_score=round(quality, 4),
            strategy=strategy.name,
            algorithm=strategy.algorithm,
            estimated_characters=used,
            max_characters=max_characters,
            space_utilization=round(used / max_characters, 4) if max_characters > 0 else 0.0,
            diversity_score=round(diversity, 4),
            balance_score=round(balance, 4),
        )


def select_documents(
    documents: Iterable[DocumentInput],
    constraints: SelectionConstraints,
    options: SelectionOptions | None = None,
    *,
    config: EngineConfig | None = None,
) -> SelectionResult:
    """Convenience wrapper around AdaptiveDocumentSelector."""
    return AdaptiveDocumentSelector(config).select_documents(documents, constraints, options)


__all__ = [
    "AdaptiveDocumentSelector",
    "ExcludedCandidate",
    "SelectionAnalysis",
    "SelectionOptimization",
    "SelectionOptions",
    "SelectionResult",
    "select_documents",
]
