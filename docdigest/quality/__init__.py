"""Quality grading for selections."""

from __future__ import annotations

from .evaluator import (
    QualityEvaluator,
    QualityRecommendation,
    QualityReport,
    QualitySummary,
    QualityValidation,
    evaluate_quality,
    grade_for,
)
from .metrics import DEFAULT_METRICS, MetricScore, QualityMetric

__all__ = [
    "DEFAULT_METRICS",
    "MetricScore",
    "QualityEvaluator",
    "QualityMetric",
    "QualityRecommendation",
    "QualityReport",
    "QualitySummary",
    "QualityValidation",
    "evaluate_quality",
    "grade_for",
]
