"""Quality metrics for a document selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from ..config import CATEGORIES, EngineConfig
from ..models import DocumentMetadata, SelectionConstraints


@dataclass
class MetricScore:
    """Value and confidence in [0, 1] plus the reasoning behind them."""

    value: float
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


Calculate = Callable[[Sequence[DocumentMetadata], SelectionConstraints, EngineConfig], MetricScore]


@dataclass(frozen=True)
class QualityMetric:
    name: str
    description: str
    weight: float
    calculate: Calculate


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _fraction(documents: Sequence[DocumentMetadata], predicate: Callable[[DocumentMetadata], bool]) -> float:
    if not documents:
        return 0.0
    return sum(1 for document in documents if predicate(document)) / len(documents)


def content_relevance(
    documents: Sequence[DocumentMetadata], constraints: SelectionConstraints, config: EngineConfig
) -> MetricScore:
    targets = [tag for tag, weight in constraints.target_tags.items() if weight > 0]
    category = constraints.target_category
    per_document = len(targets) + (1 if category else 0)
    if not documents or per_document == 0:
        return MetricScore(0.5, 0.4, ["No target tags or category to measure relevance against"])

    matched = 0
    for document in documents:
        matched += sum(1 for tag in targets if tag in document.tags.primary)
        if category and document.category == category:
            matched += 1
    value = matched / (per_document * len(documents))
    suggestions = ["Include more documents carrying the target tags"] if value < 0.6 else []
    return MetricScore(
        _clamp(value),
        0.8,
        [f"{round(value * 100)}% relevance to the target context"],
        suggestions,
    )


def content_completeness(
    documents: Sequence[DocumentMetadata], constraints: SelectionConstraints, config: EngineConfig
) -> MetricScore:
    topics = list(dict.fromkeys([*constraints.required_tags, *constraints.target_tags]))
    covered = {tag for document in documents for tag in document.all_tags}
    topic_coverage = sum(1 for topic in topics if topic in covered) / len(topics) if topics else 1.0
    available = len(config.categories) or len(CATEGORIES)
    category_coverage = len({document.category for document in documents}) / available
    value = _clamp(topic_coverage * 0.7 + category_coverage * 0.3)

    with_quality = _fraction(documents, lambda document: document.quality is not None)
    suggestions = []
    if value < 0.7:
        suggestions.append("Include documents from missing categories or topics")
    return MetricScore(
        value,
        round(0.7 * (0.5 + 0.5 * with_quality), 4),
        [
            f"Topic coverage: {round(topic_coverage * 100)}%",
            f"Category coverage: {round(category_coverage * 100)}%",
        ],
        suggestions,
    )


def audience_alignment(
    documents: Sequence[DocumentMetadata], constraints: SelectionConstraints, config: EngineConfig
) -> MetricScore:
    audiences = {audience for document in documents for audience in document.tags.audience}
    if not audiences:
        return MetricScore(0.5, 0.3, ["No audience information available"], ["Add audience tags to documents"])

    clashes = [
        (one, other)
        for one, other in config.conflicts.conflicting_audiences
        if one in audiences and other in audiences
    ]
    value = 1.0 - 0.3 * len(clashes)
    if len(audiences) <= 2:
        value += 0.1
    if constraints.target_audience:
        value *= _fraction(
            documents, lambda document: bool(set(document.tags.audience) & set(constraints.target_audience))
        )

    coverage = _fraction(documents, lambda document: bool(document.tags.audience))
    reasoning = [f"{len(clashes)} audience conflict(s) across {len(audiences)} audience(s)"]
    suggestions = ["Split conflicting audiences into separate digests"] if clashes else []
    return MetricScore(_clamp(value), round(0.7 * coverage, 4), reasoning, suggestions)


def thematic_coherence(
    documents: Sequence[DocumentMetadata], constraints: SelectionConstraints, config: EngineConfig
) -> MetricScore:
    registered = sorted({tag for document in documents for tag in document.tags.primary if tag in config.tags})
    checks = 0
    compatible = 0
    for first in registered:
        for second in registered:
            if first == second:
                continue
            checks += 1
            if second in config.tags[first].compatible_with:
                compatible += 1
    if checks == 0:
        return MetricScore(0.5, 0.3, ["Too few registered tags to judge coherence"])
    value = compatible / checks
    suggestions = ["Focus the selection on compatible themes"] if value < 0.6 else []
    return MetricScore(value, 0.6, [f"{compatible}/{checks} tag pairs declared compatible"], suggestions)


def topic_breadth(
    documents: Sequence[DocumentMetadata], constraints: SelectionConstraints, config: EngineConfig
) -> MetricScore:
    tags = {tag for document in documents for tag in document.all_tags}
    expected = min(len(documents) * 1.5, len(config.tags) * 0.4)
    if expected <= 0:
        return MetricScore(0.0, 0.3, ["Nothing to measure breadth against"])
    value = _clamp(len(tags) / expected)
    with_secondary = _fraction(documents, lambda document: bool(document.tags.secondary))
    suggestions = ["Include documents covering more diverse topics"] if value < 0.7 else []
    return MetricScore(
        value,
        round(0.7 * (0.6 + 0.4 * with_secondary), 4),
        [f"{len(tags)} unique topics covered (expected about {round(expected)})"],
        suggestions,
    )


DEFAULT_METRICS: Dict[str, QualityMetric] = {
    metric.name: metric
    for metric in (
        QualityMetric("content-relevance", "Match against target tags and category", 1.0, content_relevance),
        QualityMetric("content-completeness", "Coverage of required topics and categories", 0.9, content_completeness),
        QualityMetric("audience-alignment", "Consistency of the targeted audiences", 0.8, audience_alignment),
        QualityMetric("thematic-coherence", "Compatibility of the dominant themes", 0.7, thematic_coherence),
        QualityMetric("topic-breadth", "Variety of topics covered", 0.6, topic_breadth),
    )
}


__all__ = [
    "DEFAULT_METRICS",
    "MetricScore",
    "QualityMetric",
    "audience_alignment",
    "content_completeness",
    "content_relevance",
    "thematic_coherence",
    "topic_breadth",
]
