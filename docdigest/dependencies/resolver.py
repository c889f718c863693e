"""Bounded dependency expansion, conflict pruning and cycle reporting."""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..config import CONFLICT_RESOLUTIONS, DependencySettings, EngineConfig, default_config
from ..logging import get_logger
from ..models import DocumentMetadata

OPTIONAL_RELATIONS: Tuple[str, ...] = ("references", "followups", "complements")


@dataclass
class ResolutionOptions:
    """How far and along which relations the walk may go."""

    max_depth: int = 3
    include_optional: bool = False
    conflict_resolution: str = "higher-score-wins"

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth must be non-negative")
        if self.conflict_resolution not in CONFLICT_RESOLUTIONS:
            raise ValueError(f"Unknown conflict resolution mode: {self.conflict_resolution}")

    @classmethod
    def from_settings(cls, settings: DependencySettings) -> "ResolutionOptions":
        return cls(
            max_depth=settings.max_depth,
            include_optional=settings.include_optional,
            conflict_resolution=settings.conflict_resolution,
        )


@dataclass
class AddedDependency:
    """A document pulled in by the walk rather than supplied by the caller."""

    document: DocumentMetadata
    required_by: str
    relation: str
    depth: int


@dataclass
class ConflictExclusion:
    document: DocumentMetadata
    conflicting_with: str
    reason: str


@dataclass
class DependencyResolution:
    resolved_documents: List[DocumentMetadata]
    added_documents: List[AddedDependency] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    excluded: List[ConflictExclusion] = field(default_factory=list)
    flagged_conflicts: List[Tuple[str, str]] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def resolved_ids(self) -> List[str]:
        return [document.id for document in self.resolved_documents]


class DependencyResolver:
    """Walks dependency relations from seed documents up to a bounded depth."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or default_config()
        self.logger = get_logger("dependencies")

    def resolve(
        self,
        documents: Sequence[DocumentMetadata],
        options: ResolutionOptions | None = None,
        catalog: Optional[Iterable[DocumentMetadata]] = None,
    ) -> DependencyResolution:
        options = options or ResolutionOptions.from_settings(self.config.dependencies)
        index: Dict[str, DocumentMetadata] = {}
        for document in catalog or ():
            index.setdefault(document.id, document)
        for document in documents:
            index[document.id] = document

        resolved, added, missing = self._expand(documents, index, options)
        kept, excluded, flagged = self._prune_conflicts(resolved, options.conflict_resolution)
        cycles = self.detect_cycles(kept)
        ordered = self.order(kept)

        warnings: List[str] = []
        if cycles:
            warnings.append(f"{len(cycles)} prerequisite cycle(s) detected")
        if missing:
            warnings.append(f"{len(missing)} dependency target(s) not found")
        self.logger.debug(
            "Resolved %d seed(s) into %d document(s), %d added, %d excluded",
            len(documents),
            len(ordered),
            len(added),
            len(excluded),
        )

        kept_ids = {document.id for document in kept}
        return DependencyResolution(
            resolved_documents=ordered,
            added_documents=[item for item in added if item.document.id in kept_ids],
            cycles=cycles,
            excluded=excluded,
            flagged_conflicts=flagged,
            missing=missing,
            warnings=warnings,
        )

    def _expand(
        self,
        seeds: Sequence[DocumentMetadata],
        index: Dict[str, DocumentMetadata],
        options: ResolutionOptions,
    ) -> Tuple[List[DocumentMetadata], List[AddedDependency], List[str]]:
        relations = ("prerequisites", *OPTIONAL_RELATIONS) if options.include_optional else ("prerequisites",)
        resolved: Dict[str, DocumentMetadata] = {}
        queue: deque[Tuple[str, int]] = deque()
        for seed in seeds:
            if seed.id not in resolved:
                resolved[seed.id] = seed
                queue.append((seed.id, 0))

        added: List[AddedDependency] = []
        missing: List[str] = []
        while queue:
            current_id, depth = queue.popleft()
            if depth >= options.max_depth:
                continue
            current = resolved[current_id]
            for relation in relations:
                for target in current.dependencies.targets(relation):
                    if target in resolved:
                        continue
                    found = index.get(target)
                    if found is None:
                        if target not in missing:
                            self.logger.debug("%s references unknown document %s", current_id, target)
                            missing.append(target)
                        continue
                    resolved[target] = found
                    added.append(AddedDependency(found, current_id, relation, depth + 1))
                    queue.append((target, depth + 1))
        return list(resolved.values()), added, missing

    def _prune_conflicts(
        self, documents: List[DocumentMetadata], mode: str
    ) -> Tuple[List[DocumentMetadata], List[ConflictExclusion], List[Tuple[str, str]]]:
        by_id = {document.id: document for document in documents}
        pairs: Set[Tuple[str, str]] = set()
        for document in documents:
            for target in document.dependencies.targets("conflicts"):
                if target in by_id and target != document.id:
                    first, second = sorted((document.id, target))
                    pairs.add((first, second))

        removed: Dict[str, ConflictExclusion] = {}
        flagged: List[Tuple[str, str]] = []
        for first_id, second_id in sorted(pairs):
            if first_id in removed or second_id in removed:
                continue
            first, second = by_id[first_id], by_id[second_id]
            if mode == "manual-review":
                flagged.append((first_id, second_id))
            elif mode == "exclude-conflicts":
                reason = "Declared conflict; both documents excluded"
                removed[first_id] = ConflictExclusion(first, second_id, reason)
                removed[second_id] = ConflictExclusion(second, first_id, reason)
            else:
                winner, loser = _rank_pair(first, second)
                removed[loser.id] = ConflictExclusion(
                    loser,
                    winner.id,
                    f"Conflicts with higher-priority document {winner.id}",
                )
        kept = [document for document in documents if document.id not in removed]
        return kept, list(removed.values()), flagged

    def detect_cycles(self, documents: Sequence[DocumentMetadata]) -> List[List[str]]:
        """Find prerequisite cycles among the given documents; each is reported once."""
        known = {document.id for document in documents}
        graph = {
            document.id: [target for target in document.dependencies.targets("prerequisites") if target in known]
            for document in documents
        }

        state: Dict[str, int] = {}
        cycles: List[List[str]] = []
        seen: Set[Tuple[str, ...]] = set()
        for root in graph:
            if state.get(root):
                continue
            path: List[str] = [root]
            state[root] = 1
            stack: List[Iterator[str]] = [iter(graph[root])]
            while stack:
                target = next(stack[-1], None)
                if target is None:
                    state[path.pop()] = 2
                    stack.pop()
                    continue
                marker = state.get(target, 0)
                if marker == 1:
                    cycle = path[path.index(target):]
                    key = _canonical_cycle(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(list(key))
                elif marker == 0:
                    state[target] = 1
                    path.append(target)
                    stack.append(iter(graph[target]))
        return cycles

    def order(self, documents: Sequence[DocumentMetadata]) -> List[DocumentMetadata]:
        """Prerequisites before dependents; input order breaks ties, cycle members trail."""
        position = {document.id: index for index, document in enumerate(documents)}
        prerequisites = {
            document.id: {target for target in document.dependencies.targets("prerequisites") if target in position}
            for document in documents
        }
        dependents: Dict[str, List[str]] = {document_id: [] for document_id in position}
        for document_id, targets in prerequisites.items():
            for target in targets:
                dependents[target].append(document_id)

        remaining = {document_id: len(targets) for document_id, targets in prerequisites.items()}
        ready = [(position[document_id], document_id) for document_id, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        ordered: List[DocumentMetadata] = []
        while ready:
            _, document_id = heapq.heappop(ready)
            ordered.append(documents[position[document_id]])
            for dependent in dependents[document_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        placed = {document.id for document in ordered}
        ordered.extend(document for document in documents if document.id not in placed)
        return ordered


def _rank_pair(first: DocumentMetadata, second: DocumentMetadata) -> Tuple[DocumentMetadata, DocumentMetadata]:
    """Return (winner, loser): higher priority wins, then the smaller id."""
    if (-first.priority_score, first.id) <= (-second.priority_score, second.id):
        return first, second
    return second, first


def _canonical_cycle(cycle: Sequence[str]) -> Tuple[str, ...]:
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:]) + tuple(cycle[:pivot])


__all__ = [
    "AddedDependency",
    "ConflictExclusion",
    "DependencyResolution",
    "DependencyResolver",
    "OPTIONAL_RELATIONS",
    "ResolutionOptions",
]
