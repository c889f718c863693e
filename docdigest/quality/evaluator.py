"""Grades a document selection along several weighted quality metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence

from ..config import EngineConfig, default_config
from ..estimates import estimate_total
from ..logging import get_logger
from ..models import DocumentMetadata, SelectionConstraints
from .metrics import DEFAULT_METRICS, MetricScore, QualityMetric

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from ..selection import SelectionResult

_GRADE_FLOORS = ((90.0, "A"), (80.0, "B"), (70.0, "C"), (60.0, "D"))


def grade_for(score: float) -> str:
    for floor, grade in _GRADE_FLOORS:
        if score >= floor:
            return grade
    return "F"


@dataclass
class QualityRecommendation:
    priority: str
    action: str
    reason: str
    impact: float


@dataclass
class QualitySummary:
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    critical_issues: List[str] = field(default_factory=list)
    recommendations: List[QualityRecommendation] = field(default_factory=list)


@dataclass
class QualityValidation:
    passed: bool
    failed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class QualityReport:
    overall_score: float
    grade: str
    confidence: float
    metrics: Dict[str, MetricScore]
    summary: QualitySummary
    validation: QualityValidation


class QualityEvaluator:
    """Weighted average of named metrics, rescaled to 0-100 and bucketed into grades."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        metrics: Optional[Mapping[str, QualityMetric]] = None,
    ) -> None:
        self.config = config or default_config()
        self.metrics: Dict[str, QualityMetric] = dict(metrics) if metrics is not None else dict(DEFAULT_METRICS)
        self.logger = get_logger("quality")

    def evaluate_quality(
        self,
        selected_documents: Sequence[DocumentMetadata],
        constraints: SelectionConstraints,
        selection_result: Optional["SelectionResult"] = None,
    ) -> QualityReport:
        scores: Dict[str, MetricScore] = {}
        weighted = 0.0
        total_weight = 0.0
        for name, metric in self.metrics.items():
            try:
                score = metric.calculate(selected_documents, constraints, self.config)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Quality metric %s failed: %s", name, exc)
                continue
            scores[name] = score
            weighted += score.value * metric.weight
            total_weight += metric.weight

        overall = round(100.0 * weighted / total_weight, 2) if total_weight > 0 else 0.0
        confidence = round(sum(s.confidence for s in scores.values()) / len(scores), 4) if scores else 0.0
        validation = self._validate(selected_documents, constraints, scores, selection_result)
        report = QualityReport(
            overall_score=overall,
            grade=grade_for(overall),
            confidence=confidence,
            metrics=scores,
            summary=self._summarize(scores),
            validation=validation,
        )
        self.logger.debug("Quality %.1f (%s), %d failure(s)", overall, report.grade, len(validation.failed))
        return report

    def _validate(
        self,
        documents: Sequence[DocumentMetadata],
        constraints: SelectionConstraints,
        scores: Mapping[str, MetricScore],
        selection_result: Optional["SelectionResult"],
    ) -> QualityValidation:
        settings = self.config.quality
        failed: List[str] = []
        warnings: List[str] = []

        if len(documents) < settings.min_documents:
            failed.append(f"min-documents: selected {len(documents)}, need at least {settings.min_documents}")

        for name, score in scores.items():
            if score.value < settings.hard_minimum:
                failed.append(f"{name}: {score.value:.2f} below minimum {settings.hard_minimum:.2f}")
            elif score.value < settings.soft_target:
                warnings.append(f"{name}: {score.value:.2f} below target {settings.soft_target:.2f}")

        estimated = estimate_total(documents)
        if constraints.max_characters and estimated > constraints.max_characters:
            warnings.append(
                f"character-limit: estimated {estimated} characters exceeds {constraints.max_characters}"
            )

        if selection_result is not None:
            application = selection_result.conflict_application
            if application is not None and application.unresolved:
                warnings.append(f"conflicts: {len(application.unresolved)} conflict(s) need manual review")
            if selection_result.errors:
                warnings.append(f"errors: {len(selection_result.errors)} document(s) could not be processed")

        return QualityValidation(passed=not failed, failed=failed, warnings=warnings)

    @staticmethod
    def _summarize(scores: Mapping[str, MetricScore]) -> QualitySummary:
        summary = QualitySummary()
        for name, score in scores.items():
            label = name.replace("-", " ")
            if score.value >= 0.8:
                summary.strengths.append(f"Excellent {label}")
            elif score.value <= 0.4:
                summary.weaknesses.append(f"Poor {label}")
                if score.value <= 0.2:
                    summary.critical_issues.append(f"Critical: {label} needs immediate attention")
            if score.suggestions:
                priority = "high" if score.value <= 0.3 else "medium" if score.value <= 0.6 else "low"
                summary.recommendations.append(
                    QualityRecommendation(
                        priority=priority,
                        action=score.suggestions[0],
                        reason=f"Improve {label} (current: {round(score.value * 100)}%)",
                        impact=round(1.0 - score.value, 4),
                    )
                )
        order = {"high": 0, "medium": 1, "low": 2}
        summary.recommendations.sort(key=lambda item: (order[item.priority], -item.impact))
        return summary


def evaluate_quality(
    selected_documents: Sequence[DocumentMetadata],
    constraints: SelectionConstraints,
    selection_result: Optional["SelectionResult"] = None,
    *,
    config: EngineConfig | None = None,
) -> QualityReport:
    return QualityEvaluator(config).evaluate_quality(selected_documents, constraints, selection_result)


__all__ = [
    "QualityEvaluator",
    "QualityRecommendation",
    "QualityReport",
    "QualitySummary",
    "QualityValidation",
    "evaluate_quality",
    "grade_for",
]
