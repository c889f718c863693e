"""Character-exact composition of a digest from pre-rendered excerpts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import EngineConfig, default_config
from ..logging import get_logger
from ..models import DocumentMetadata
from .toc import TableOfContentsBuilder

SEPARATOR = "\n\n"


@dataclass
class CompositionOptions:
    character_limit: int
    language: str = "en"
    include_table_of_contents: bool = True
    toc_character_limit: Optional[int] = None
    priority_threshold: float = 0.0

    def __post_init__(self) -> None:
        if self.character_limit < 0:
            raise ValueError("character_limit must be non-negative")


@dataclass
class ComposedDocument:
    document_id: str
    title: str
    priority: float
    excerpt_limit: int
    characters: int


@dataclass
class CompositionSummary:
    target_characters: int
    actual_characters: int
    utilization: float
    documents_included: int
    documents_available: int
    toc_characters: int
    content_characters: int


@dataclass
class CompositionResult:
    content: str
    language: str
    summary: CompositionSummary
    documents: List[ComposedDocument] = field(default_factory=list)
    table_of_contents: str = ""

    @property
    def document_ids(self) -> List[str]:
        return [item.document_id for item in self.documents]


class AdaptiveComposer:
    """Splits a hard character budget between a table of contents and document bodies."""

    def __init__(
        self,
        documents: Sequence[DocumentMetadata],
        config: EngineConfig | None = None,
        toc_builder: TableOfContentsBuilder | None = None,
    ) -> None:
        self.documents = list(documents)
        self.config = config or default_config()
        self.toc_builder = toc_builder or TableOfContentsBuilder()
        self.logger = get_logger("composition")

    def compose(self, options: CompositionOptions) -> CompositionResult:
        limit = options.character_limit
        reserve = self.config.composition.reserve
        candidates = self._candidates(options)

        toc = ""
        if options.include_table_of_contents and candidates:
            toc_limit = options.toc_character_limit
            if toc_limit is None:
                toc_limit = self.config.composition.toc_character_limit
            toc = self.toc_builder.build(candidates, min(toc_limit, limit))

        parts: List[str] = [toc] if toc else []
        used = len(toc)
        included: List[ComposedDocument] = []
        for document in candidates:
            if limit - used <= reserve:
                break
            overhead = len(SEPARATOR) if parts else 0
            available = limit - used - overhead
            chosen = self._largest_fitting(document, available)
            if chosen is None:
                continue
            excerpt_limit, text = chosen
            parts.append(text)
            used += overhead + len(text)
            included.append(
                ComposedDocument(
                    document_id=document.id,
                    title=document.title,
                    priority=document.priority_score,
                    excerpt_limit=excerpt_limit,
                    characters=len(text),
                )
            )

        content = SEPARATOR.join(parts)
        summary = CompositionSummary(
            target_characters=limit,
            actual_characters=len(content),
            utilization=round(len(content) / limit, 4) if limit > 0 else 0.0,
            documents_included=len(included),
            documents_available=len(candidates),
            toc_characters=len(toc),
            content_characters=len(content) - len(toc),
        )
        self.logger.debug(
            "Composed %d/%d characters from %d document(s) (%s)",
            summary.actual_characters,
            limit,
            summary.documents_included,
            options.language,
        )
        return CompositionResult(
            content=content,
            language=options.language,
            summary=summary,
            documents=included,
            table_of_contents=toc,
        )

    def compose_batch(
        self, character_limits: Optional[Iterable[int]] = None, **options: object
    ) -> Dict[int, CompositionResult]:
        """Compose each limit independently."""
        limits = character_limits if character_limits is not None else self.config.composition.standard_limits
        results: Dict[int, CompositionResult] = {}
        for limit in sorted(set(limits)):
            results[limit] = self.compose(CompositionOptions(character_limit=limit, **options))  # type: ignore[arg-type]
        return results

    def _candidates(self, options: CompositionOptions) -> List[DocumentMetadata]:
        eligible = []
        for document in self.documents:
            if document.language != options.language:
                continue
            if document.priority_score < options.priority_threshold:
                continue
            if not document.excerpts:
                self.logger.debug("Skipping %s: no excerpts", document.id)
                continue
            eligible.append(document)
        return sorted(eligible, key=lambda document: (-document.priority_score, document.id))

    @staticmethod
    def _largest_fitting(document: DocumentMetadata, available: int) -> Optional[tuple[int, str]]:
        best: Optional[tuple[int, str]] = None
        for excerpt_limit in document.excerpt_limits():
            text = document.excerpts[excerpt_limit].rstrip()
            if not text or len(text) > available:
                continue
            if best is None or len(text) > len(best[1]):
                best = (excerpt_limit, text)
        return best


__all__ = [
    "AdaptiveComposer",
    "ComposedDocument",
    "CompositionOptions",
    "CompositionResult",
    "CompositionSummary",
    "SEPARATOR",
]
