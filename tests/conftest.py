from __future__ import annotations

import pytest

from docdigest.config import EngineConfig, default_config


@pytest.fixture
def config() -> EngineConfig:
    """Provide a fresh built-in engine configuration per test."""
    return default_config()
