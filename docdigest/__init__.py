"""docdigest: budget-constrained document selection and composition."""

from __future__ import annotations

from .config import ConfigError, EngineConfig, default_config, load_config
from .models import DocumentMetadata, DocumentPatch, SelectionConstraints, SelectionContext
from .pipeline import DigestOutcome, DigestPipeline

__all__ = [
    "ConfigError",
    "DigestOutcome",
    "DigestPipeline",
    "DocumentMetadata",
    "DocumentPatch",
    "EngineConfig",
    "SelectionConstraints",
    "SelectionContext",
    "default_config",
    "load_config",
]
