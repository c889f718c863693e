"""Pairwise conflict detection, resolution planning and application."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..config import EngineConfig, default_config
from ..logging import get_logger
from ..models import DocumentMetadata, DocumentPatch
from .rules import (
    NO_IMPACT,
    ConflictImpact,
    ConflictKind,
    ConflictResolution,
    ConflictRule,
    ResolutionAction,
    Severity,
    builtin_rules,
)

_UNRESOLVED_ACTIONS = {ResolutionAction.MERGE, ResolutionAction.MANUAL_REVIEW}

_PLAN_STEPS = {
    ResolutionAction.EXCLUDE_FIRST: "exclude",
    ResolutionAction.EXCLUDE_SECOND: "exclude",
    ResolutionAction.EXCLUDE_BOTH: "exclude",
    ResolutionAction.MODIFY_FIRST: "modify",
    ResolutionAction.MODIFY_SECOND: "modify",
    ResolutionAction.MERGE: "merge",
}


@dataclass
class Conflict:
    """One rule firing on one unordered pair, stored in id order."""

    id: str
    first: DocumentMetadata
    second: DocumentMetadata
    kind: ConflictKind
    severity: Severity
    description: str
    impact: ConflictImpact
    resolution: Optional[ConflictResolution] = None

    @property
    def document_ids(self) -> tuple[str, str]:
        return (self.first.id, self.second.id)

    @property
    def auto_resolvable(self) -> bool:
        return self.resolution is not None and self.resolution.action not in _UNRESOLVED_ACTIONS


@dataclass
class ConflictDetectionOptions:
    enabled_rules: Optional[Sequence[ConflictKind | str]] = None
    severity_threshold: Severity = Severity.MINOR
    auto_resolve: bool = True
    include_impact: bool = True


@dataclass
class ConflictSummary:
    total: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_kind: Dict[str, int] = field(default_factory=dict)
    auto_resolvable: int = 0
    requires_manual_review: int = 0


@dataclass
class Recommendation:
    priority: str
    action: str
    reason: str
    affected_documents: List[str]


@dataclass
class ResolutionStep:
    step: int
    action: str
    document_ids: List[str]
    conflict_ids: List[str]
    rationale: str


@dataclass
class ConflictAnalysisResult:
    conflicts: List[Conflict]
    summary: ConflictSummary
    recommendations: List[Recommendation]
    resolution_plan: List[ResolutionStep]


@dataclass
class ExcludedDocument:
    document: DocumentMetadata
    reason: str
    conflict_ids: List[str]


@dataclass
class ModifiedDocument:
    original: DocumentMetadata
    modified: DocumentMetadata
    patch: DocumentPatch


@dataclass
class ConflictApplication:
    resolved_documents: List[DocumentMetadata]
    excluded: List[ExcludedDocument] = field(default_factory=list)
    modified: List[ModifiedDocument] = field(default_factory=list)
    unresolved: List[Conflict] = field(default_factory=list)

    @property
    def excluded_ids(self) -> List[str]:
        return [item.document.id for item in self.excluded]


class ConflictDetector:
    """Evaluates every unordered document pair against the enabled rules."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        rules: Optional[Mapping[ConflictKind, ConflictRule]] = None,
    ) -> None:
        self.config = config or default_config()
        self.rules: Dict[ConflictKind, ConflictRule] = dict(rules) if rules is not None else builtin_rules()
        self.logger = get_logger("conflicts")

    def detect_conflicts(
        self,
        documents: Sequence[DocumentMetadata],
        options: ConflictDetectionOptions | None = None,
    ) -> ConflictAnalysisResult:
        options = options or ConflictDetectionOptions()
        rules = self._active_rules(options)
        ordered = sorted(documents, key=lambda document: document.id)

        conflicts: List[Conflict] = []
        for first, second in combinations(ordered, 2):
            if first.id == second.id:
                continue
            for rule in rules:
                description = rule.detect(first, second, self.config)
                if description is None:
                    continue
                resolution = None
                if options.auto_resolve and rule.resolve is not None:
                    resolution = rule.resolve(first, second, self.config)
                conflicts.append(
                    Conflict(
                        id=f"{rule.kind.value}:{first.id}:{second.id}",
                        first=first,
                        second=second,
                        kind=rule.kind,
                        severity=rule.severity,
                        description=description,
                        impact=rule.impact if options.include_impact else NO_IMPACT,
                        resolution=resolution,
                    )
                )

        if conflicts:
            self.logger.debug("Detected %d conflict(s) across %d document(s)", len(conflicts), len(ordered))
        return ConflictAnalysisResult(
            conflicts=conflicts,
            summary=self._summarize(conflicts),
            recommendations=self._recommend(conflicts),
            resolution_plan=self.resolution_plan(conflicts),
        )

    def apply_conflict_resolutions(
        self, documents: Sequence[DocumentMetadata], conflicts: Sequence[Conflict]
    ) -> ConflictApplication:
        """Execute resolutions from critical to minor; an excluded document is never revisited."""
        current: Dict[str, DocumentMetadata] = {document.id: document for document in documents}
        excluded: Dict[str, ExcludedDocument] = {}
        modified: List[ModifiedDocument] = []
        unresolved: List[Conflict] = []

        for conflict in sorted(conflicts, key=lambda item: -item.severity.rank):
            resolution = conflict.resolution
            if resolution is None or resolution.action in _UNRESOLVED_ACTIONS:
                unresolved.append(conflict)
                continue
            first_id, second_id = conflict.document_ids
            if first_id in excluded or second_id in excluded:
                continue
            action = resolution.action
            if action is ResolutionAction.KEEP_BOTH:
                continue
            if action in (ResolutionAction.EXCLUDE_FIRST, ResolutionAction.EXCLUDE_BOTH):
                self._exclude(current, excluded, first_id, resolution.reason, conflict.id)
            if action in (ResolutionAction.EXCLUDE_SECOND, ResolutionAction.EXCLUDE_BOTH):
                self._exclude(current, excluded, second_id, resolution.reason, conflict.id)
            if action in (ResolutionAction.MODIFY_FIRST, ResolutionAction.MODIFY_SECOND):
                if not self._modify(current, modified, resolution.patches):
                    unresolved.append(conflict)

        resolved = [current[document.id] for document in documents if document.id in current]
        return ConflictApplication(
            resolved_documents=resolved,
            excluded=list(excluded.values()),
            modified=modified,
            unresolved=unresolved,
        )

    def resolution_plan(self, conflicts: Sequence[Conflict]) -> List[ResolutionStep]:
        """Group resolved conflicts by action, most severe groups first."""
        resolved = sorted(
            (conflict for conflict in conflicts if conflict.resolution is not None),
            key=lambda item: -item.severity.rank,
        )
        groups: Dict[ResolutionAction, List[Conflict]] = {}
        for conflict in resolved:
            groups.setdefault(conflict.resolution.action, []).append(conflict)  # type: ignore[union-attr]

        plan: List[ResolutionStep] = []
        for number, (action, group) in enumerate(groups.items(), start=1):
            step_action = _PLAN_STEPS.get(action, "review")
            if step_action == "review":
                rationale = f"Manual review required for {len(group)} conflict(s) ({action.value})"
            else:
                rationale = f"{step_action.capitalize()} documents to resolve {len(group)} conflict(s)"
            document_ids = list(dict.fromkeys(doc_id for conflict in group for doc_id in conflict.document_ids))
            plan.append(
                ResolutionStep(
                    step=number,
                    action=step_action,
                    document_ids=document_ids,
                    conflict_ids=[conflict.id for conflict in group],
                    rationale=rationale,
                )
            )
        return plan

    def _active_rules(self, options: ConflictDetectionOptions) -> List[ConflictRule]:
        enabled = None
        if options.enabled_rules is not None:
            enabled = {ConflictKind(kind) for kind in options.enabled_rules}
        threshold = options.severity_threshold.rank
        return [
            rule
            for kind, rule in self.rules.items()
            if (enabled is None or kind in enabled) and rule.severity.rank >= threshold
        ]

    def _exclude(
        self,
        current: Dict[str, DocumentMetadata],
        excluded: Dict[str, ExcludedDocument],
        document_id: str,
        reason: str,
        conflict_id: str,
    ) -> None:
        document = current.pop(document_id, None)
        if document is None:
            return
        self.logger.debug("Excluding %s: %s", document_id, reason)
        excluded[document_id] = ExcludedDocument(document, reason, [conflict_id])

    def _modify(
        self,
        current: Dict[str, DocumentMetadata],
        modified: List[ModifiedDocument],
        patches: Sequence[DocumentPatch],
    ) -> bool:
        if not patches:
            return False
        for patch in patches:
            original = current.get(patch.document_id)
            if original is None:
                return False
            try:
                updated = patch.apply(original)
            except (ValueError, ValidationError) as exc:
                self.logger.warning("Could not apply patch to %s: %s", patch.document_id, exc)
                return False
            current[patch.document_id] = updated
            modified.append(ModifiedDocument(original, updated, patch))
        return True

    @staticmethod
    def _summarize(conflicts: Sequence[Conflict]) -> ConflictSummary:
        by_severity = Counter(conflict.severity.value for conflict in conflicts)
        by_kind = Counter(conflict.kind.value for conflict in conflicts)
        auto = sum(1 for conflict in conflicts if conflict.auto_resolvable)
        return ConflictSummary(
            total=len(conflicts),
            by_severity={severity.value: by_severity.get(severity.value, 0) for severity in Severity},
            by_kind=dict(sorted(by_kind.items())),
            auto_resolvable=auto,
            requires_manual_review=len(conflicts) - auto,
        )

    @staticmethod
    def _recommend(conflicts: Sequence[Conflict]) -> List[Recommendation]:
        def affected(items: Sequence[Conflict]) -> List[str]:
            return sorted({doc_id for item in items for doc_id in item.document_ids})

        recommendations: List[Recommendation] = []
        critical = [conflict for conflict in conflicts if conflict.severity is Severity.CRITICAL]
        if critical:
            recommendations.append(
                Recommendation(
                    "high",
                    "Resolve critical conflicts immediately",
                    f"{len(critical)} critical conflict(s) will severely impact readers",
                    affected(critical),
                )
            )
        duplicates = [conflict for conflict in conflicts if conflict.kind is ConflictKind.CONTENT_DUPLICATE]
        if duplicates:
            recommendations.append(
                Recommendation(
                    "high",
                    "Remove duplicate content",
                    "Duplicate documents reduce content quality and confuse readers",
                    affected(duplicates),
                )
            )
        tag_clashes = [conflict for conflict in conflicts if conflict.kind is ConflictKind.TAG_INCOMPATIBLE]
        if tag_clashes:
            recommendations.append(
                Recommendation(
                    "medium",
                    "Review tag assignments",
                    "Incompatible tags blur which audience a digest serves",
                    affected(tag_clashes),
                )
            )
        return recommendations


__all__ = [
    "Conflict",
    "ConflictAnalysisResult",
    "ConflictApplication",
    "ConflictDetectionOptions",
    "ConflictDetector",
    "ConflictSummary",
    "ExcludedDocument",
    "ModifiedDocument",
    "Recommendation",
    "ResolutionStep",
]
