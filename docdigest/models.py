"""Core data models shared across docdigest components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

Category = Literal["guide", "api", "concept", "example", "reference", "llms"]
Complexity = Literal["basic", "intermediate", "advanced", "expert"]
Tier = Literal["critical", "essential", "important", "reference", "supplementary"]
Importance = Literal["required", "recommended", "optional"]

COMPLEXITY_LEVELS: Tuple[str, ...] = ("basic", "intermediate", "advanced", "expert")
RELATION_KINDS: Tuple[str, ...] = ("prerequisites", "references", "followups", "complements", "conflicts")

_TIER_FLOORS: Tuple[Tuple[float, str], ...] = (
    (90, "critical"),
    (75, "essential"),
    (50, "important"),
    (25, "reference"),
)


def tier_for_score(score: float) -> str:
    """Map a 0-100 priority score onto its tier band."""
    for floor, tier in _TIER_FLOORS:
        if score >= floor:
            return tier
    return "supplementary"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class PriorityInfo(_Record):
    score: float = Field(ge=0, le=100)
    tier: Optional[Tier] = None
    rationale: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_tier(cls, data: Any) -> Any:
        if isinstance(data, (int, float)) and not isinstance(data, bool):
            data = {"score": data}
        if isinstance(data, Mapping) and data.get("tier") is None and isinstance(data.get("score"), (int, float)):
            data = {**data, "tier": tier_for_score(float(data["score"]))}
        return data


class DocumentTags(_Record):
    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)
    audience: List[str] = Field(default_factory=list)
    complexity: Optional[Complexity] = None

    @property
    def all(self) -> List[str]:
        """Primary then secondary tags, without duplicates."""
        return list(dict.fromkeys([*self.primary, *self.secondary]))


class DependencyRelation(_Record):
    document_id: str = Field(min_length=1, alias="documentId")
    importance: Importance = "optional"
    reason: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_identifier(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"document_id": data}
        return data


class DependencyRecord(_Record):
    prerequisites: List[DependencyRelation] = Field(default_factory=list)
    references: List[DependencyRelation] = Field(default_factory=list)
    followups: List[DependencyRelation] = Field(default_factory=list)
    complements: List[DependencyRelation] = Field(default_factory=list)
    conflicts: List[DependencyRelation] = Field(default_factory=list)

    def targets(self, kind: str) -> List[str]:
        return [relation.document_id for relation in getattr(self, kind)]


class CompositionAffinity(_Record):
    category_affinity: Dict[str, float] = Field(default_factory=dict)
    tag_affinity: Dict[str, float] = Field(default_factory=dict)
    contextual_relevance: Dict[str, float] = Field(default_factory=dict)


class QualityMetrics(_Record):
    readability: Optional[float] = Field(default=None, ge=0, le=100)
    completeness: Optional[float] = Field(default=None, ge=0, le=100)
    accuracy: Optional[float] = Field(default=None, ge=0, le=100)
    freshness: Optional[float] = Field(default=None, ge=0, le=100)

    def present(self) -> Dict[str, float]:
        values = {
            "readability": self.readability,
            "completeness": self.completeness,
            "accuracy": self.accuracy,
            "freshness": self.freshness,
        }
        return {name: value for name, value in values.items() if value is not None}


class DocumentMetadata(_Record):
    """Immutable description of one candidate document."""

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    source_path: str = ""
    category: Category
    language: str = "en"
    word_count: Optional[int] = Field(default=None, ge=0)
    priority: PriorityInfo
    tags: DocumentTags = Field(default_factory=DocumentTags)
    keywords: List[str] = Field(default_factory=list)
    dependencies: DependencyRecord = Field(default_factory=DependencyRecord)
    composition: Optional[CompositionAffinity] = None
    quality: Optional[QualityMetrics] = None
    excerpts: Dict[int, str] = Field(default_factory=dict)

    @field_validator("excerpts")
    @classmethod
    def _positive_limits(cls, value: Dict[int, str]) -> Dict[int, str]:
        for limit in value:
            if limit <= 0:
                raise ValueError(f"excerpt limit must be positive, got {limit}")
        return value

    @property
    def all_tags(self) -> List[str]:
        return self.tags.all

    @property
    def priority_score(self) -> float:
        return self.priority.score

    def excerpt_limits(self) -> List[int]:
        return sorted(self.excerpts)


@dataclass(frozen=True)
class DocumentPatch:
    """Named-field changes for one document; applying it yields a new record.

    `drop_secondary_tags` is evaluated against the record the patch is applied to,
    so several tag removals on one document accumulate.
    """

    document_id: str
    changes: Mapping[str, Any]
    reason: str = ""
    drop_secondary_tags: Tuple[str, ...] = ()

    def apply(self, document: DocumentMetadata) -> DocumentMetadata:
        if document.id != self.document_id:
            raise ValueError(f"Patch for '{self.document_id}' cannot apply to '{document.id}'")
        unknown = sorted(set(self.changes) - set(DocumentMetadata.model_fields))
        if unknown:
            raise ValueError(f"Unknown document fields in patch: {', '.join(unknown)}")
        if "id" in self.changes and self.changes["id"] != document.id:
            raise ValueError("Patches cannot change a document id")
        payload = document.model_dump()
        payload.update(self.changes)
        if self.drop_secondary_tags:
            tags = payload["tags"]
            tags = dict(tags) if isinstance(tags, Mapping) else tags.model_dump()
            tags["secondary"] = [tag for tag in tags["secondary"] if tag not in self.drop_secondary_tags]
            payload["tags"] = tags
        return DocumentMetadata.model_validate(payload)


@dataclass
class DocumentError:
    """Per-document failure recovered by a pipeline stage."""

    document_id: str
    stage: str
    message: str


@dataclass
class SelectionContext:
    """Inputs the scorer needs for one selection run."""

    target_tags: Dict[str, float] = field(default_factory=dict)
    max_characters: int = 0
    quality_threshold: Optional[float] = None
    selected_documents: Sequence[DocumentMetadata] = field(default_factory=list)
    target_category: Optional[str] = None

    @property
    def selected_ids(self) -> set[str]:
        return {document.id for document in self.selected_documents}


@dataclass
class SelectionConstraints:
    """Caller-facing constraints for a selection run."""

    max_characters: int
    target_tags: Dict[str, float] = field(default_factory=dict)
    required_tags: List[str] = field(default_factory=list)
    excluded_tags: List[str] = field(default_factory=list)
    target_audience: List[str] = field(default_factory=list)
    filter_by_audience: bool = False
    strict_compatibility: bool = False
    quality_threshold: Optional[float] = None
    target_category: Optional[str] = None
    selected_documents: Sequence[DocumentMetadata] = field(default_factory=list)

    def context(self) -> SelectionContext:
        return SelectionContext(
            target_tags=dict(self.target_tags),
            max_characters=self.max_characters,
            quality_threshold=self.quality_threshold,
            selected_documents=list(self.selected_documents),
            target_category=self.target_category,
        )


DocumentInput = Union[DocumentMetadata, Mapping[str, Any]]


def parse_documents(records: Iterable[DocumentInput]) -> Tuple[List[DocumentMetadata], List[DocumentError]]:
    """Validate raw records, keeping good documents and reporting the rest."""
    documents: List[DocumentMetadata] = []
    errors: List[DocumentError] = []
    seen: set[str] = set()
    for index, record in enumerate(records):
        if isinstance(record, DocumentMetadata):
            document = record
        elif isinstance(record, Mapping):
            try:
                document = DocumentMetadata.model_validate(record)
            except ValidationError as exc:
                errors.append(DocumentError(_record_id(record, index), "validation", _summarize(exc)))
                continue
        else:
            errors.append(
                DocumentError(f"#{index}", "validation", f"Expected a mapping, got {type(record).__name__}")
            )
            continue
        if document.id in seen:
            errors.append(DocumentError(document.id, "validation", "Duplicate document id; keeping first"))
            continue
        seen.add(document.id)
        documents.append(document)
    return documents, errors


def _record_id(record: Mapping[str, Any], index: int) -> str:
    value = record.get("id")
    return str(value) if isinstance(value, str) and value else f"#{index}"


def _summarize(exc: ValidationError) -> str:
    parts = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg', 'invalid')}" if location else str(item.get("msg")))
    return "; ".join(parts)


__all__ = [
    "COMPLEXITY_LEVELS",
    "RELATION_KINDS",
    "CompositionAffinity",
    "DependencyRecord",
    "DependencyRelation",
    "DocumentError",
    "DocumentInput",
    "DocumentMetadata",
    "DocumentPatch",
    "DocumentTags",
    "PriorityInfo",
    "QualityMetrics",
    "SelectionConstraints",
    "SelectionContext",
    "parse_documents",
    "tier_for_score",
]
