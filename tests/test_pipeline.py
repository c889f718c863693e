"""Tests for docdigest.pipeline."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from docdigest import DigestPipeline, SelectionConstraints
from docdigest.config import EngineConfig
from tests._fixtures.documents import document_record


@pytest.fixture
def records():
    return [
        document_record(
            "install",
            priority=90,
            primary=["beginner", "core"],
            word_count=40,
            excerpts={
                100: "# Install\nRun pip install docdigest.",
                300: "# Install\nRun pip install docdigest, then create .docdigest.yml beside your docs.",
            },
        ),
        document_record(
            "configure",
            priority=70,
            primary=["core"],
            word_count=40,
            excerpts={100: "# Configure\nStrategies and weights live in YAML."},
        ),
        document_record(
            "changelog",
            category="api",
            priority=20,
            word_count=200,
            excerpts={100: "# Changelog\nEverything that changed."},
        ),
    ]


def test_run_selects_composes_and_grades(config: EngineConfig, records) -> None:
    pipeline = DigestPipeline(config)
    constraints = SelectionConstraints(max_characters=600, target_tags={"core": 1.0})

    outcome = pipeline.run(records, constraints, strategy="greedy")

    assert outcome.selection.selected_ids == ["install", "configure"]
    assert outcome.selection.exclusion_for("changelog").stage == "budget"
    assert outcome.composition.document_ids == ["install", "configure"]
    assert outcome.content.startswith("# Table of Contents\n- Install\n- Configure")
    assert "create .docdigest.yml" in outcome.content
    assert len(outcome.content) <= 600
    assert outcome.quality.grade in {"A", "B", "C", "D", "F"}
    assert outcome.quality.validation.passed


def test_character_limit_overrides_selection_budget(config: EngineConfig, records) -> None:
    outcome = DigestPipeline(config).run(
        records,
        SelectionConstraints(max_characters=600),
        strategy="greedy",
        character_limit=120,
        include_table_of_contents=False,
    )

    assert len(outcome.content) <= 120
    assert outcome.composition.table_of_contents == ""
    assert outcome.composition.document_ids == ["install"]


def test_run_logs_progress(config: EngineConfig, records, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="docdigest"):
        DigestPipeline(config).run(records, SelectionConstraints(max_characters=600))

    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("Building 600 character digest (strategy balanced)") for message in messages)
    assert any(message.startswith("Digest ready:") for message in messages)


def test_from_path_reads_config(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text("composition:\n  reserve: 10\n", encoding="utf-8")

    pipeline = DigestPipeline.from_path(tmp_path)

    assert pipeline.config.composition.reserve == 10
    assert pipeline.selector.config is pipeline.config
