"""Hard tag and audience constraints applied before scoring."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import EngineConfig, default_config
from ..logging import get_logger
from ..models import DocumentError, DocumentMetadata


class ExclusionKind(str, Enum):
    EXCLUDED_TAG = "excluded-tag"
    MISSING_REQUIRED = "missing-required"
    AUDIENCE_MISMATCH = "audience-mismatch"
    INCOMPATIBLE_TAGS = "incompatible-tags"


@dataclass
class TagFilterCriteria:
    """Constraints a document must satisfy to stay in the candidate pool."""

    required_tags: List[str] = field(default_factory=list)
    excluded_tags: List[str] = field(default_factory=list)
    target_audience: List[str] = field(default_factory=list)
    filter_by_audience: bool = False
    strict_compatibility: bool = False
    require_all_required: bool = True


@dataclass
class TagExclusion:
    """Why a document was dropped by the filter."""

    document: DocumentMetadata
    kind: ExclusionKind
    reason: str
    tags: List[str] = field(default_factory=list)


@dataclass
class TagFilterStatistics:
    total: int = 0
    included: int = 0
    excluded: int = 0
    by_reason: Dict[str, int] = field(default_factory=dict)
    tag_coverage: Dict[str, int] = field(default_factory=dict)


@dataclass
class TagFilterResult:
    filtered: List[DocumentMetadata]
    excluded: List[TagExclusion]
    statistics: TagFilterStatistics
    errors: List[DocumentError] = field(default_factory=list)

    def excluded_ids(self) -> List[str]:
        return [item.document.id for item in self.excluded]


class TagCompatibilityFilter:
    """Excludes documents that violate tag, audience or compatibility constraints."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or default_config()
        self.logger = get_logger("filters.tags")

    def filter(self, documents: Iterable[DocumentMetadata], criteria: TagFilterCriteria) -> TagFilterResult:
        accepted: List[DocumentMetadata] = []
        excluded: List[TagExclusion] = []
        errors: List[DocumentError] = []
        total = 0

        for document in documents:
            total += 1
            try:
                exclusion = self.check(document, criteria)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Tag filter skipped %s: %s", getattr(document, "id", "?"), exc)
                errors.append(DocumentError(str(getattr(document, "id", f"#{total - 1}")), "tag-filter", str(exc)))
                continue
            if exclusion is None:
                accepted.append(document)
            else:
                self.logger.debug("Excluded %s: %s", document.id, exclusion.reason)
                excluded.append(exclusion)

        by_reason = Counter(item.kind.value for item in excluded)
        coverage = Counter(tag for document in accepted for tag in document.tags.primary)
        statistics = TagFilterStatistics(
            total=total,
            included=len(accepted),
            excluded=len(excluded),
            by_reason=dict(sorted(by_reason.items())),
            tag_coverage=dict(sorted(coverage.items())),
        )
        return TagFilterResult(filtered=accepted, excluded=excluded, statistics=statistics, errors=errors)

    def check(self, document: DocumentMetadata, criteria: TagFilterCriteria) -> Optional[TagExclusion]:
        """Return the first violated constraint for a document, or None when it passes."""
        tags = document.all_tags
        tag_set = set(tags)

        hits = [tag for tag in criteria.excluded_tags if tag in tag_set]
        if hits:
            return TagExclusion(document, ExclusionKind.EXCLUDED_TAG, "Has excluded tags: " + ", ".join(hits), hits)

        if criteria.required_tags:
            missing = [tag for tag in criteria.required_tags if tag not in tag_set]
            if criteria.require_all_required:
                violated = bool(missing)
            else:
                violated = len(missing) == len(criteria.required_tags)
            if violated:
                return TagExclusion(
                    document,
                    ExclusionKind.MISSING_REQUIRED,
                    "Missing required tags: " + ", ".join(missing),
                    missing,
                )

        if criteria.filter_by_audience and criteria.target_audience:
            audience = set(document.tags.audience)
            if not audience.intersection(criteria.target_audience):
                wanted = ", ".join(criteria.target_audience)
                return TagExclusion(
                    document,
                    ExclusionKind.AUDIENCE_MISMATCH,
                    f"Audience does not include any of: {wanted}",
                    list(document.tags.audience),
                )

        if criteria.strict_compatibility:
            clashes = self.incompatible_pairs(tags)
            if clashes:
                flat = sorted({tag for pair in clashes for tag in pair})
                described = "; ".join(f"{a} / {b}" for a, b in clashes)
                return TagExclusion(
                    document,
                    ExclusionKind.INCOMPATIBLE_TAGS,
                    f"Incompatible tag combination: {described}",
                    flat,
                )
        return None

    def incompatible_pairs(self, tags: Sequence[str]) -> List[tuple[str, str]]:
        pairs = []
        for first, second in combinations(sorted(set(tags)), 2):
            if self.config.tags_incompatible(first, second):
                pairs.append((first, second))
        return pairs


__all__ = [
    "ExclusionKind",
    "TagCompatibilityFilter",
    "TagExclusion",
    "TagFilterCriteria",
    "TagFilterResult",
    "TagFilterStatistics",
]
