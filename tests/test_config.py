"""Tests for docdigest.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from docdigest.config import (
    CATEGORIES,
    ConfigError,
    EngineConfig,
    StrategyConfig,
    default_config,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, EngineConfig)
    assert config.root == tmp_path.resolve()
    assert config.default_strategy == "balanced"
    assert set(config.strategies) == {"greedy", "balanced", "quality-focused", "diverse"}
    assert set(config.categories) == set(CATEGORIES)
    assert config.dependencies.max_depth == 3
    assert config.composition.reserve == 50
    assert config.composition.toc_character_limit == 100


def test_default_strategies_sum_to_one(config: EngineConfig) -> None:
    for strategy in config.strategies.values():
        assert strategy.weight_total == pytest.approx(1.0)


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text(
        """
default_strategy: focused
strategies:
  focused:
    algorithm: quality-focused
    weights:
      priority: 0.8
      tag: "0.1"
      dependency: 0.1
    category_bonus: 0.05
categories:
  guide:
    priority: 99
    ideal_share: 40
tags:
  beginner:
    weight: 2
    incompatible_with: [expert]
  expert:
    audience: [experts]
dependencies:
  max_depth: 1
  include_optional: "yes"
  conflict_resolution: exclude-conflicts
conflicts:
  conflicting_audiences:
    - [beginners, experts]
  similarity_threshold: 0.9
composition:
  reserve: 20
  toc_character_limit: 250
  standard_limits: [1000, 100, 500]
quality:
  hard_minimum: 0.2
  soft_target: 0.5
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    strategy = config.strategy()
    assert strategy.name == "focused"
    assert strategy.algorithm == "quality-focused"
    assert strategy.tag_weight == pytest.approx(0.1)
    assert strategy.category_bonus == pytest.approx(0.05)
    assert "greedy" in config.strategies

    guide = config.categories["guide"]
    assert guide.priority == 99
    assert guide.ideal_share == pytest.approx(40)
    assert guide.preferred_tags == ["beginner", "step-by-step", "practical"]

    assert config.tags["beginner"].weight == pytest.approx(2.0)
    assert config.tags_incompatible("expert", "beginner")
    assert config.tags["expert"].audience == ["experts"]

    assert config.dependencies.max_depth == 1
    assert config.dependencies.include_optional is True
    assert config.dependencies.conflict_resolution == "exclude-conflicts"
    assert config.conflicts.conflicting_audiences == [("beginners", "experts")]
    assert config.conflicts.similarity_threshold == pytest.approx(0.9)
    assert config.composition.reserve == 20
    assert config.composition.toc_character_limit == 250
    assert config.composition.standard_limits == [100, 500, 1000]
    assert config.quality.hard_minimum == pytest.approx(0.2)
    assert config.quality.soft_target == pytest.approx(0.5)


def test_load_config_accepts_explicit_file(tmp_path: Path) -> None:
    path = tmp_path / "custom.yml"
    path.write_text("composition:\n  reserve: 10\n", encoding="utf-8")

    assert load_config(path).composition.reserve == 10


def test_load_config_rejects_weights_not_summing_to_one(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text(
        "strategies:\n  lopsided:\n    algorithm: greedy\n    weights: {priority: 0.5, tag: 0.2, dependency: 0.1}\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="lopsided"):
        load_config(tmp_path)


def test_load_config_rejects_missing_weights(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text(
        "strategies:\n  partial:\n    weights: {priority: 1.0}\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="weights"):
        load_config(tmp_path)


def test_load_config_rejects_unknown_tag_reference(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text(
        "tags:\n  beginner:\n    compatible_with: [nonexistent]\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="nonexistent"):
        load_config(tmp_path)


def test_load_config_rejects_unknown_category(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text("categories:\n  tutorials:\n    priority: 10\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="tutorials"):
        load_config(tmp_path)


def test_load_config_rejects_non_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_load_config_reports_yaml_errors(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text("strategies: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_strategy_lookup_rejects_unknown_name(config: EngineConfig) -> None:
    with pytest.raises(ConfigError, match="Unknown composition strategy"):
        config.strategy("fastest")


def test_validate_rejects_unknown_algorithm() -> None:
    config = default_config()
    config.strategies["odd"] = StrategyConfig(
        name="odd", algorithm="random", priority_weight=1.0, tag_weight=0.0, dependency_weight=0.0
    )

    with pytest.raises(ConfigError, match="unknown algorithm 'random'"):
        config.validate()


def test_tags_incompatible_is_symmetric(config: EngineConfig) -> None:
    assert config.tags_incompatible("beginner", "advanced")
    assert config.tags_incompatible("advanced", "beginner")
    assert not config.tags_incompatible("beginner", "practical")
    assert not config.tags_incompatible("beginner", "beginner")


def test_category_tags_are_free_form_but_groups_need_two_tags(tmp_path: Path) -> None:
    (tmp_path / ".docdigest.yml").write_text(
        "categories:\n  guide:\n    preferred_tags: [walkthrough]\n    synergistic_tags: [[walkthrough, screenshots]]\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.categories["guide"].preferred_tags == ["walkthrough"]

    config.categories["guide"].avoid_combinations.append(("walkthrough",))
    with pytest.raises(ConfigError, match=r"categories\.guide\.avoid_combinations: expected at least two tags"):
        config.validate()
