"""Tests for docdigest.filters.tags."""

from __future__ import annotations

from docdigest.config import EngineConfig
from docdigest.filters import ExclusionKind, TagCompatibilityFilter, TagFilterCriteria
from tests._fixtures.documents import make_document


def test_excluded_tags_take_precedence(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    document = make_document("internals", primary=["advanced"], secondary=["beginner"])
    criteria = TagFilterCriteria(required_tags=["core"], excluded_tags=["advanced"], strict_compatibility=True)

    exclusion = tag_filter.check(document, criteria)

    assert exclusion is not None
    assert exclusion.kind is ExclusionKind.EXCLUDED_TAG
    assert exclusion.reason == "Has excluded tags: advanced"


def test_required_tags_consider_secondary_tags(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    documents = [
        make_document("install", primary=["core"], secondary=["beginner"]),
        make_document("tuning", primary=["performance"]),
    ]

    result = tag_filter.filter(documents, TagFilterCriteria(required_tags=["core", "beginner"]))

    assert [document.id for document in result.filtered] == ["install"]
    assert result.excluded[0].kind is ExclusionKind.MISSING_REQUIRED
    assert result.excluded[0].reason == "Missing required tags: core, beginner"


def test_any_required_tag_is_enough_when_configured(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    document = make_document("install", primary=["core"])

    assert tag_filter.check(document, TagFilterCriteria(required_tags=["core", "beginner"])) is not None
    criteria = TagFilterCriteria(required_tags=["core", "beginner"], require_all_required=False)
    assert tag_filter.check(document, criteria) is None


def test_audience_filter_only_applies_when_enabled(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    document = make_document("internals", audience=["contributors"])

    assert tag_filter.check(document, TagFilterCriteria(target_audience=["beginners"])) is None
    exclusion = tag_filter.check(document, TagFilterCriteria(target_audience=["beginners"], filter_by_audience=True))
    assert exclusion is not None
    assert exclusion.kind is ExclusionKind.AUDIENCE_MISMATCH
    assert exclusion.tags == ["contributors"]


def test_strict_compatibility_rejects_declared_clashes(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    document = make_document("mixed-levels", primary=["beginner"], secondary=["advanced"])

    assert tag_filter.check(document, TagFilterCriteria()) is None
    exclusion = tag_filter.check(document, TagFilterCriteria(strict_compatibility=True))
    assert exclusion is not None
    assert exclusion.kind is ExclusionKind.INCOMPATIBLE_TAGS
    assert exclusion.reason == "Incompatible tag combination: advanced / beginner"
    assert exclusion.tags == ["advanced", "beginner"]


def test_filter_reports_statistics(config: EngineConfig) -> None:
    tag_filter = TagCompatibilityFilter(config)
    documents = [
        make_document("install", primary=["core", "beginner"]),
        make_document("configure", primary=["core"]),
        make_document("internals", primary=["expert"]),
        make_document("legacy", primary=["deprecated"]),
    ]
    criteria = TagFilterCriteria(required_tags=["core"], excluded_tags=["deprecated"])

    result = tag_filter.filter(documents, criteria)

    assert result.statistics.total == 4
    assert result.statistics.included == 2
    assert result.statistics.excluded == 2
    assert result.statistics.by_reason == {"excluded-tag": 1, "missing-required": 1}
    assert result.statistics.tag_coverage == {"beginner": 1, "core": 2}
    assert result.excluded_ids() == ["internals", "legacy"]


class _BrokenFilter(TagCompatibilityFilter):
    def check(self, document, criteria):
        if document.id == "broken":
            raise RuntimeError("tag registry unavailable")
        return super().check(document, criteria)


def test_filter_isolates_per_document_failures(config: EngineConfig) -> None:
    documents = [make_document("install"), make_document("broken"), make_document("deploy")]

    result = _BrokenFilter(config).filter(documents, TagFilterCriteria())

    assert [document.id for document in result.filtered] == ["install", "deploy"]
    assert len(result.errors) == 1
    assert result.errors[0].document_id == "broken"
    assert result.errors[0].stage == "tag-filter"
    assert result.statistics.total == 3


def test_advanced_only_document_fails_beginner_requirement(config: EngineConfig) -> None:
    document = make_document("internals", primary=["advanced"])

    result = TagCompatibilityFilter(config).filter([document], TagFilterCriteria(required_tags=["beginner"]))

    assert result.filtered == []
    assert result.excluded[0].tags == ["beginner"]
    assert "beginner" in result.excluded[0].reason
