"""Tests for docdigest.selection.selector."""

from __future__ import annotations

import pytest

from docdigest.config import ConfigError, EngineConfig
from docdigest.models import DocumentMetadata, SelectionConstraints, SelectionContext
from docdigest.scoring import DocumentScorer, ScoreResult
from docdigest.selection import AdaptiveDocumentSelector, SelectionOptions, select_documents
from tests._fixtures.documents import document_record, make_document


@pytest.fixture
def mixed_records():
    return [
        document_record("install", priority=90),
        document_record("configure", priority=85),
        document_record("deploy", priority=80),
        document_record("endpoints", category="api", priority=40, word_count=160),
        document_record("architecture", category="concept", priority=30, word_count=160),
    ]


def test_greedy_selection_fills_budget_by_score(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [
        document_record("charlie", priority=50),
        document_record("alpha", priority=90),
        document_record("bravo", priority=70),
    ]

    result = selector.select_documents(records, SelectionConstraints(max_characters=2000), SelectionOptions("greedy"))

    assert result.selected_ids == ["alpha", "bravo"]
    assert result.sizes == {"alpha": 1000, "bravo": 1000}
    assert result.exclusion_for("charlie").stage == "budget"
    assert result.optimization.estimated_characters == 2000
    assert result.optimization.space_utilization == pytest.approx(1.0)
    assert result.optimization.quality_score == pytest.approx(0.8)
    assert result.optimization.strategy == "greedy"
    assert set(result.scores) == {"alpha", "bravo", "charlie"}


def test_balanced_selection_spreads_categories(config: EngineConfig, mixed_records) -> None:
    selector = AdaptiveDocumentSelector(config)
    constraints = SelectionConstraints(max_characters=4000)

    balanced = selector.select_documents(mixed_records, constraints)
    greedy = selector.select_documents(mixed_records, constraints, SelectionOptions(strategy="greedy"))

    assert balanced.optimization.strategy == "balanced"
    assert balanced.selected_ids == ["install", "endpoints", "architecture", "configure"]
    assert greedy.selected_ids == ["install", "configure", "deploy", "endpoints"]
    assert balanced.optimization.diversity_score == pytest.approx(1.0)
    assert greedy.optimization.diversity_score == pytest.approx(2 / 3, abs=1e-4)
    assert balanced.optimization.space_utilization == pytest.approx(0.9)
    assert balanced.analysis.category_coverage == {"api": 1, "concept": 1, "guide": 2}


def test_selection_never_exceeds_estimated_budget(config: EngineConfig, mixed_records) -> None:
    selector = AdaptiveDocumentSelector(config)

    for strategy in config.strategies:
        result = selector.select_documents(
            mixed_records, SelectionConstraints(max_characters=2700), SelectionOptions(strategy=strategy)
        )
        assert sum(result.sizes.values()) <= 2700


def test_malformed_records_are_reported_not_fatal(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [document_record("alpha", priority=90), {"id": "broken"}, document_record("bravo")]

    result = selector.select_documents(records, SelectionConstraints(max_characters=5000))

    assert sorted(result.selected_ids) == ["alpha", "bravo"]
    assert [(error.document_id, error.stage) for error in result.errors] == [("broken", "validation")]


class _FailingScorer(DocumentScorer):
    def score(self, document: DocumentMetadata, context: SelectionContext) -> ScoreResult:
        if document.id == "bravo":
            raise ValueError("corrupt metadata")
        return super().score(document, context)


def test_scoring_failures_drop_only_that_document(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config, scorer=_FailingScorer(config, strategy="greedy"))
    records = [document_record("alpha"), document_record("bravo"), document_record("charlie")]

    result = selector.select_documents(
        records, SelectionConstraints(max_characters=5000), SelectionOptions(strategy="greedy")
    )

    assert result.selected_ids == ["alpha", "charlie"]
    assert [(error.document_id, error.stage) for error in result.errors] == [("bravo", "scoring")]


def test_required_tag_exclusion_survives_prerequisite_walk(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [
        document_record("tutorial", primary=["beginner"], prerequisites=["deep-dive"]),
        document_record("deep-dive", primary=["performance"]),
    ]

    result = selector.select_documents(
        records,
        SelectionConstraints(max_characters=5000, required_tags=["beginner"]),
        SelectionOptions(strategy="greedy"),
    )

    assert result.selected_ids == ["tutorial"]
    assert result.exclusion_for("deep-dive").stage == "tag-filter"
    assert result.dependency_resolution.added_documents == []
    assert result.dependency_resolution.missing == ["deep-dive"]


def test_audience_exclusion_survives_prerequisite_walk(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [
        document_record("tutorial", audience=["beginners"], prerequisites=["internals"]),
        document_record("internals", audience=["contributors"]),
    ]
    constraints = SelectionConstraints(
        max_characters=5000, target_audience=["beginners"], filter_by_audience=True
    )

    result = selector.select_documents(records, constraints, SelectionOptions(strategy="greedy"))

    assert result.selected_ids == ["tutorial"]
    assert result.exclusion_for("internals").stage == "tag-filter"
    assert result.dependency_resolution.missing == ["internals"]


def test_excluded_tags_block_prerequisites(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [
        document_record("tutorial", prerequisites=["legacy"]),
        document_record("legacy", primary=["deprecated"]),
    ]

    result = selector.select_documents(
        records, SelectionConstraints(max_characters=5000, excluded_tags=["deprecated"])
    )

    assert result.selected_ids == ["tutorial"]
    assert result.exclusion_for("legacy").stage == "tag-filter"
    assert result.dependency_resolution.missing == ["legacy"]


def test_already_selected_documents_are_skipped(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    alpha = make_document("alpha", priority=90)
    records = [document_record("alpha", priority=90), document_record("bravo", prerequisites=["alpha"])]

    result = selector.select_documents(
        records, SelectionConstraints(max_characters=5000, selected_documents=[alpha])
    )

    assert result.selected_ids == ["bravo"]
    assert result.scores["bravo"].breakdown.dependency_relevance == pytest.approx(0.4)


def test_quality_threshold_excludes_low_scores(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [document_record("alpha", priority=90), document_record("bravo", priority=20)]

    result = selector.select_documents(
        records,
        SelectionConstraints(max_characters=5000, quality_threshold=0.5),
        SelectionOptions(strategy="greedy"),
    )

    assert result.selected_ids == ["alpha"]
    exclusion = result.exclusion_for("bravo")
    assert exclusion.stage == "quality"
    assert "below threshold 0.500" in exclusion.reason


def test_conflicting_duplicates_are_resolved_before_scoring(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)
    records = [
        document_record("intro", priority=80, title="Start"),
        document_record("welcome", priority=40, title="Start"),
    ]

    result = selector.select_documents(records, SelectionConstraints(max_characters=5000))
    kept = selector.select_documents(
        records, SelectionConstraints(max_characters=5000), SelectionOptions(detect_conflicts=False)
    )

    assert result.selected_ids == ["intro"]
    assert result.exclusion_for("welcome").stage == "conflicts"
    assert result.conflict_application.excluded_ids == ["welcome"]
    assert sorted(kept.selected_ids) == ["intro", "welcome"]


def test_unknown_strategy_is_rejected(config: EngineConfig) -> None:
    selector = AdaptiveDocumentSelector(config)

    with pytest.raises(ConfigError, match="Unknown composition strategy"):
        selector.select_documents([], SelectionConstraints(max_characters=100), SelectionOptions(strategy="fastest"))


def test_empty_input_yields_empty_selection(config: EngineConfig) -> None:
    result = select_documents([], SelectionConstraints(max_characters=1000), config=config)

    assert result.selected_documents == []
    assert result.optimization.quality_score == 0.0
    assert result.optimization.space_utilization == 0.0
    assert result.errors == []


def test_selection_is_repeatable(config: EngineConfig, mixed_records) -> None:
    selector = AdaptiveDocumentSelector(config)
    constraints = SelectionConstraints(max_characters=3000, target_tags={"core": 1.0})

    for strategy in config.strategies:
        first = selector.select_documents(mixed_records, constraints, SelectionOptions(strategy=strategy))
        second = selector.select_documents(list(mixed_records), constraints, SelectionOptions(strategy=strategy))
        assert first.selected_ids == second.selected_ids
