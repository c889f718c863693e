"""Tests for docdigest.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from docdigest.logging import configure_logging, get_logger


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("docdigest")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def test_get_logger_is_scoped() -> None:
    assert get_logger().name == "docdigest"
    assert get_logger("selection").name == "docdigest.selection"


def test_configure_logging_replaces_handlers(restore_logger: logging.Logger) -> None:
    configure_logging()
    logger = configure_logging(verbose=True)

    assert logger is restore_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert not logger.propagate


def test_configure_logging_writes_file(restore_logger: logging.Logger, tmp_path: Path) -> None:
    log_file = tmp_path / "digest.log"
    configure_logging(log_file=log_file)

    get_logger("pipeline").info("hello from the pipeline")
    for handler in restore_logger.handlers:
        handler.flush()

    assert "docdigest.pipeline: hello from the pipeline" in log_file.read_text(encoding="utf-8")
