"""Built-in pairwise conflict rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..config import EngineConfig
from ..models import COMPLEXITY_LEVELS, DocumentMetadata, DocumentPatch


class ConflictKind(str, Enum):
    TAG_INCOMPATIBLE = "tag-incompatible"
    CONTENT_DUPLICATE = "content-duplicate"
    AUDIENCE_MISMATCH = "audience-mismatch"
    COMPLEXITY_GAP = "complexity-gap"
    CATEGORY_EXCLUSIVE = "category-exclusive"
    DECLARED_CONFLICT = "declared-conflict"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MINOR: 0, Severity.MODERATE: 1, Severity.MAJOR: 2, Severity.CRITICAL: 3}


class ResolutionAction(str, Enum):
    EXCLUDE_FIRST = "exclude-first"
    EXCLUDE_SECOND = "exclude-second"
    EXCLUDE_BOTH = "exclude-both"
    MODIFY_FIRST = "modify-first"
    MODIFY_SECOND = "modify-second"
    MERGE = "merge"
    KEEP_BOTH = "keep-both"
    MANUAL_REVIEW = "manual-review"


@dataclass(frozen=True)
class ConflictImpact:
    user_experience: float
    content_quality: float
    system_complexity: float


NO_IMPACT = ConflictImpact(0.0, 0.0, 0.0)


@dataclass
class ConflictResolution:
    """Proposed action for one conflict; patches accompany modify actions."""

    action: ResolutionAction
    confidence: float
    reason: str
    patches: List[DocumentPatch] = field(default_factory=list)


# Rules see the pair in id order; predicates return a description or None.
Detect = Callable[[DocumentMetadata, DocumentMetadata, EngineConfig], Optional[str]]
Resolve = Callable[[DocumentMetadata, DocumentMetadata, EngineConfig], ConflictResolution]


@dataclass(frozen=True)
class ConflictRule:
    kind: ConflictKind
    severity: Severity
    description: str
    detect: Detect
    impact: ConflictImpact
    resolve: Optional[Resolve] = None


def levenshtein(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(left: str, right: str) -> float:
    """Normalized Levenshtein similarity in [0, 1]."""
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(left, right) / longest


def _rank(first: DocumentMetadata, second: DocumentMetadata) -> Tuple[DocumentMetadata, DocumentMetadata]:
    if (-first.priority_score, first.id) <= (-second.priority_score, second.id):
        return first, second
    return second, first


def _exclude_lower(first: DocumentMetadata, second: DocumentMetadata, confidence: float, why: str) -> ConflictResolution:
    winner, loser = _rank(first, second)
    action = ResolutionAction.EXCLUDE_SECOND if winner is first else ResolutionAction.EXCLUDE_FIRST
    return ConflictResolution(
        action,
        confidence,
        f"{why}; keeping {winner.id} (priority {winner.priority_score:g}) over {loser.id}",
    )


def _incompatible_tags(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> List[Tuple[str, str]]:
    pairs = []
    for left in sorted(set(first.all_tags)):
        for right in sorted(set(second.all_tags)):
            if config.tags_incompatible(left, right):
                pairs.append((left, right))
    return pairs


def _detect_tag_incompatible(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    pairs = _incompatible_tags(first, second, config)
    if not pairs:
        return None
    described = ", ".join(f"{left}/{right}" for left, right in pairs)
    return f"{first.id} and {second.id} carry incompatible tags ({described})"


def _resolve_tag_incompatible(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> ConflictResolution:
    winner, loser = _rank(first, second)
    pairs = _incompatible_tags(first, second, config)
    offending = {left if loser is first else right for left, right in pairs}
    if offending and offending.issubset(loser.tags.secondary) and not offending.intersection(loser.tags.primary):
        patch = DocumentPatch(
            loser.id, {}, reason="drop incompatible secondary tags", drop_secondary_tags=tuple(sorted(offending))
        )
        action = ResolutionAction.MODIFY_SECOND if loser is second else ResolutionAction.MODIFY_FIRST
        dropped = ", ".join(sorted(offending))
        return ConflictResolution(action, 0.6, f"Drop secondary tags {dropped} from {loser.id}", [patch])
    return _exclude_lower(first, second, 0.8, "Incompatible tags")


def _detect_duplicate(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    if first.title.strip().lower() == second.title.strip().lower():
        return f"{first.id} and {second.id} share the title '{first.title}'"
    score = similarity(first.id, second.id)
    if score > config.conflicts.similarity_threshold:
        return f"{first.id} and {second.id} have near-identical ids (similarity {score:.2f})"
    return None


def _resolve_duplicate(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> ConflictResolution:
    return _exclude_lower(first, second, 0.9, "Duplicate content")


def _detect_audience(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    left, right = set(first.tags.audience), set(second.tags.audience)
    for one, other in config.conflicts.conflicting_audiences:
        if (one in left and other in right) or (other in left and one in right):
            return f"{first.id} and {second.id} target conflicting audiences ({one} vs {other})"
    return None


def _resolve_keep_both(confidence: float, reason: str) -> Resolve:
    def _resolve(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> ConflictResolution:
        return ConflictResolution(ResolutionAction.KEEP_BOTH, confidence, reason)

    return _resolve


def _detect_complexity_gap(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    left, right = first.tags.complexity, second.tags.complexity
    if left is None or right is None:
        return None
    gap = abs(COMPLEXITY_LEVELS.index(left) - COMPLEXITY_LEVELS.index(right))
    if gap >= config.conflicts.complexity_gap:
        return f"{first.id} ({left}) and {second.id} ({right}) are {gap} complexity levels apart"
    return None


def _detect_category_exclusive(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    for one, other in config.conflicts.exclusive_categories:
        if {first.category, second.category} == {one, other} and one != other:
            return f"{first.id} ({first.category}) and {second.id} ({second.category}) are mutually exclusive categories"
    return None


def _resolve_category_exclusive(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> ConflictResolution:
    def key(document: DocumentMetadata) -> Tuple[int, float, str]:
        return (-config.category(document.category).priority, -document.priority_score, document.id)

    winner, loser = (first, second) if key(first) <= key(second) else (second, first)
    action = ResolutionAction.EXCLUDE_SECOND if winner is first else ResolutionAction.EXCLUDE_FIRST
    return ConflictResolution(
        action,
        0.7,
        f"Category {winner.category} outranks {loser.category}; keeping {winner.id} over {loser.id}",
    )


def _detect_declared(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> Optional[str]:
    if second.id in first.dependencies.targets("conflicts") or first.id in second.dependencies.targets("conflicts"):
        return f"{first.id} and {second.id} declare a conflict with each other"
    return None


def _resolve_declared(first: DocumentMetadata, second: DocumentMetadata, config: EngineConfig) -> ConflictResolution:
    return ConflictResolution(ResolutionAction.MANUAL_REVIEW, 1.0, "Declared conflicts need an editorial decision")


BUILTIN_RULES: Mapping[ConflictKind, ConflictRule] = {
    ConflictKind.TAG_INCOMPATIBLE: ConflictRule(
        ConflictKind.TAG_INCOMPATIBLE,
        Severity.MODERATE,
        "Documents carry tags declared mutually incompatible",
        _detect_tag_incompatible,
        ConflictImpact(0.4, 0.3, 0.2),
        _resolve_tag_incompatible,
    ),
    ConflictKind.CONTENT_DUPLICATE: ConflictRule(
        ConflictKind.CONTENT_DUPLICATE,
        Severity.MAJOR,
        "Documents duplicate each other",
        _detect_duplicate,
        ConflictImpact(0.8, 0.9, 0.3),
        _resolve_duplicate,
    ),
    ConflictKind.AUDIENCE_MISMATCH: ConflictRule(
        ConflictKind.AUDIENCE_MISMATCH,
        Severity.MINOR,
        "Documents target conflicting audiences",
        _detect_audience,
        ConflictImpact(0.6, 0.2, 0.1),
        _resolve_keep_both(0.6, "Audiences differ but both documents remain useful"),
    ),
    ConflictKind.COMPLEXITY_GAP: ConflictRule(
        ConflictKind.COMPLEXITY_GAP,
        Severity.MINOR,
        "Documents are far apart in complexity",
        _detect_complexity_gap,
        ConflictImpact(0.7, 0.4, 0.2),
        _resolve_keep_both(0.5, "Complexity spread is tolerated"),
    ),
    ConflictKind.CATEGORY_EXCLUSIVE: ConflictRule(
        ConflictKind.CATEGORY_EXCLUSIVE,
        Severity.MODERATE,
        "Documents belong to mutually exclusive categories",
        _detect_category_exclusive,
        ConflictImpact(0.5, 0.3, 0.4),
        _resolve_category_exclusive,
    ),
    ConflictKind.DECLARED_CONFLICT: ConflictRule(
        ConflictKind.DECLARED_CONFLICT,
        Severity.CRITICAL,
        "Documents declare a conflict relation",
        _detect_declared,
        ConflictImpact(0.7, 0.6, 0.3),
        _resolve_declared,
    ),
}

_missing = set(ConflictKind) - set(BUILTIN_RULES)
if _missing:  # pragma: no cover - registry guard
    raise RuntimeError(f"Conflict kinds without a rule: {sorted(kind.value for kind in _missing)}")


def builtin_rules() -> Dict[ConflictKind, ConflictRule]:
    """Fresh copy of the built-in registry, safe for callers to extend."""
    return dict(BUILTIN_RULES)


__all__ = [
    "BUILTIN_RULES",
    "NO_IMPACT",
    "ConflictImpact",
    "ConflictKind",
    "ConflictResolution",
    "ConflictRule",
    "ResolutionAction",
    "Severity",
    "builtin_rules",
    "levenshtein",
    "similarity",
]
