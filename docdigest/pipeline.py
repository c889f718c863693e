"""Pipeline orchestration: select, compose and grade one digest."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .composition import AdaptiveComposer, CompositionOptions, CompositionResult
from .config import EngineConfig, default_config, load_config
from .logging import get_logger
from .models import DocumentInput, SelectionConstraints
from .quality import QualityEvaluator, QualityReport
from .selection import AdaptiveDocumentSelector, SelectionOptions, SelectionResult


@dataclass
class DigestOutcome:
    """Everything produced for one digest request."""

    selection: SelectionResult
    composition: CompositionResult
    quality: QualityReport

    @property
    def content(self) -> str:
        return self.composition.content


class DigestPipeline:
    """Coordinates the selector, composer and evaluator for a single request."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        selector: AdaptiveDocumentSelector | None = None,
        evaluator: QualityEvaluator | None = None,
    ) -> None:
        self.config = config or default_config()
        self.selector = selector or AdaptiveDocumentSelector(self.config)
        self.evaluator = evaluator or QualityEvaluator(self.config)
        self.logger = get_logger("pipeline")

    @classmethod
    def from_path(cls, path: Path) -> "DigestPipeline":
        """Build a pipeline from the .docdigest.yml found at or beside `path`."""
        return cls(load_config(path))

    def run(
        self,
        documents: Iterable[DocumentInput],
        constraints: SelectionConstraints,
        *,
        strategy: Optional[str] = None,
        character_limit: Optional[int] = None,
        language: str = "en",
        include_table_of_contents: bool = True,
        toc_character_limit: Optional[int] = None,
    ) -> DigestOutcome:
        limit = constraints.max_characters if character_limit is None else character_limit
        self.logger.info("Building %d character digest (strategy %s)", limit, strategy or self.config.default_strategy)

        selection = self.selector.select_documents(documents, constraints, SelectionOptions(strategy=strategy))
        composer = AdaptiveComposer(selection.selected_documents, self.config)
        composition = composer.compose(
            CompositionOptions(
                character_limit=limit,
                language=language,
                include_table_of_contents=include_table_of_contents,
                toc_character_limit=toc_character_limit,
            )
        )
        quality = self.evaluator.evaluate_quality(selection.selected_documents, constraints, selection)

        self.logger.info(
            "Digest ready: %d document(s), %d/%d characters, grade %s",
            composition.summary.documents_included,
            composition.summary.actual_characters,
            limit,
            quality.grade,
        )
        return DigestOutcome(selection=selection, composition=composition, quality=quality)


__all__ = ["DigestOutcome", "DigestPipeline"]
