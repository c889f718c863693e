"""Engine configuration loading for docdigest (.docdigest.yml)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

CONFIG_FILENAME = ".docdigest.yml"

CATEGORIES: Tuple[str, ...] = ("guide", "api", "concept", "example", "reference", "llms")
ALGORITHMS: Tuple[str, ...] = ("greedy", "balanced", "quality-focused", "diverse")
CONFLICT_RESOLUTIONS: Tuple[str, ...] = ("higher-score-wins", "exclude-conflicts", "manual-review")

_WEIGHT_TOLERANCE = 1e-6


class ConfigError(RuntimeError):
    """Raised when the engine configuration is malformed or inconsistent."""


@dataclass
class CategoryConfig:
    """Per-category defaults consumed by the scorer and selector.

    Tag lists here are free-form vocabulary matched against document tags; they
    need not name entries of the tag registry.
    """

    name: str
    priority: int = 50
    preferred_tags: List[str] = field(default_factory=list)
    required_characteristics: List[str] = field(default_factory=list)
    synergistic_tags: List[Tuple[str, ...]] = field(default_factory=list)
    avoid_combinations: List[Tuple[str, ...]] = field(default_factory=list)
    max_documents: int = 10
    ideal_share: float = 0.0


@dataclass
class TagConfig:
    """A registered tag and its compatibility lists."""

    name: str
    weight: float = 1.0
    compatible_with: List[str] = field(default_factory=list)
    incompatible_with: List[str] = field(default_factory=list)
    audience: List[str] = field(default_factory=list)
    importance: str = "optional"


@dataclass
class StrategyConfig:
    """Named weight set plus the selection algorithm it drives."""

    name: str
    algorithm: str
    priority_weight: float
    tag_weight: float
    dependency_weight: float
    category_bonus: float = 0.1
    max_documents_per_category: int = 2

    @property
    def weight_total(self) -> float:
        return self.priority_weight + self.tag_weight + self.dependency_weight


@dataclass
class DependencySettings:
    """Defaults for the dependency walk."""

    max_depth: int = 3
    include_optional: bool = False
    conflict_resolution: str = "higher-score-wins"


@dataclass
class ConflictSettings:
    """Lists and thresholds used by the built-in conflict rules."""

    conflicting_audiences: List[Tuple[str, str]] = field(
        default_factory=lambda: [("beginners", "experts"), ("framework-users", "contributors")]
    )
    exclusive_categories: List[Tuple[str, str]] = field(
        default_factory=lambda: [("guide", "reference"), ("example", "concept")]
    )
    similarity_threshold: float = 0.8
    complexity_gap: int = 2


@dataclass
class CompositionSettings:
    """Composer defaults."""

    reserve: int = 50
    toc_character_limit: int = 100
    standard_limits: List[int] = field(
        default_factory=lambda: [100, 200, 300, 400, 500, 1000, 2000, 3000, 4000]
    )


@dataclass
class QualitySettings:
    """Quality evaluator thresholds, metric values in [0, 1]."""

    hard_minimum: float = 0.3
    soft_target: float = 0.6
    min_documents: int = 1


@dataclass
class EngineConfig:
    """Read-only configuration passed explicitly into every engine component."""

    categories: Dict[str, CategoryConfig] = field(default_factory=dict)
    tags: Dict[str, TagConfig] = field(default_factory=dict)
    strategies: Dict[str, StrategyConfig] = field(default_factory=dict)
    default_strategy: str = "balanced"
    dependencies: DependencySettings = field(default_factory=DependencySettings)
    conflicts: ConflictSettings = field(default_factory=ConflictSettings)
    composition: CompositionSettings = field(default_factory=CompositionSettings)
    quality: QualitySettings = field(default_factory=QualitySettings)
    root: Optional[Path] = None

    def strategy(self, name: Optional[str] = None) -> StrategyConfig:
        """Return the named strategy, or the default one."""
        key = name or self.default_strategy
        try:
            return self.strategies[key]
        except KeyError:
            known = ", ".join(sorted(self.strategies))
            raise ConfigError(f"Unknown composition strategy '{key}' (known: {known})") from None

    def category(self, name: str) -> CategoryConfig:
        return self.categories.get(name) or CategoryConfig(name=name)

    def tags_incompatible(self, first: str, second: str) -> bool:
        """True when either tag declares the other incompatible."""
        if first == second:
            return False
        left = self.tags.get(first)
        right = self.tags.get(second)
        if left is not None and second in left.incompatible_with:
            return True
        if right is not None and first in right.incompatible_with:
            return True
        return False

    def validate(self) -> "EngineConfig":
        """Raise ConfigError for inconsistent settings; returns self for chaining."""
        problems: List[str] = []

        for name, category in self.categories.items():
            if name not in CATEGORIES:
                problems.append(f"categories: unknown category '{name}'")
            groupings = {"synergistic_tags": category.synergistic_tags, "avoid_combinations": category.avoid_combinations}
            for label, groups in groupings.items():
                for group in groups:
                    if len(group) < 2 or not all(group):
                        problems.append(f"categories.{name}.{label}: expected at least two tags, got {list(group)}")

        for name, tag in self.tags.items():
            if tag.weight < 0:
                problems.append(f"tags.{name}: weight must be non-negative")
            for ref in (*tag.compatible_with, *tag.incompatible_with):
                if ref not in self.tags:
                    problems.append(f"tags.{name}: references unknown tag '{ref}'")

        if not self.strategies:
            problems.append("strategies: at least one strategy is required")
        for name, strategy in self.strategies.items():
            problems.extend(_strategy_problems(name, strategy))
        if self.strategies and self.default_strategy not in self.strategies:
            problems.append(f"default_strategy: unknown strategy '{self.default_strategy}'")

        if self.dependencies.max_depth < 0:
            problems.append("dependencies.max_depth must be non-negative")
        if self.dependencies.conflict_resolution not in CONFLICT_RESOLUTIONS:
            problems.append(
                f"dependencies.conflict_resolution: unknown mode '{self.dependencies.conflict_resolution}'"
            )

        for first, second in self.conflicts.exclusive_categories:
            for ref in (first, second):
                if ref not in CATEGORIES:
                    problems.append(f"conflicts.exclusive_categories: unknown category '{ref}'")

        if self.composition.reserve < 0:
            problems.append("composition.reserve must be non-negative")
        if not 0.0 <= self.quality.hard_minimum <= self.quality.soft_target <= 1.0:
            problems.append("quality: expected 0 <= hard_minimum <= soft_target <= 1")

        if problems:
            raise ConfigError("Invalid docdigest configuration:\n  " + "\n  ".join(problems))
        return self


def _strategy_problems(name: str, strategy: StrategyConfig) -> List[str]:
    problems: List[str] = []
    if strategy.algorithm not in ALGORITHMS:
        problems.append(f"strategies.{name}: unknown algorithm '{strategy.algorithm}'")
    weights = (strategy.priority_weight, strategy.tag_weight, strategy.dependency_weight)
    if any(weight is None or weight < 0 for weight in weights):
        problems.append(f"strategies.{name}: weights must be present and non-negative")
    elif not math.isclose(strategy.weight_total, 1.0, abs_tol=_WEIGHT_TOLERANCE):
        problems.append(
            f"strategies.{name}: weights sum to {strategy.weight_total:.3f}, expected 1.0"
        )
    if strategy.category_bonus < 0:
        problems.append(f"strategies.{name}: category_bonus must be non-negative")
    if strategy.max_documents_per_category < 1:
        problems.append(f"strategies.{name}: max_documents_per_category must be at least 1")
    return problems


def default_config() -> EngineConfig:
    """Build the validated built-in configuration."""
    return _default_config().validate()


def _default_config() -> EngineConfig:
    categories = {
        "guide": CategoryConfig(
            name="guide",
            priority=90,
            preferred_tags=["beginner", "step-by-step", "practical"],
            required_characteristics=["practical-steps"],
            synergistic_tags=[("beginner", "step-by-step"), ("practical", "example")],
            avoid_combinations=[("beginner", "advanced"), ("basic", "expert")],
            max_documents=8,
            ideal_share=25,
        ),
        "api": CategoryConfig(
            name="api",
            priority=85,
            preferred_tags=["reference", "technical", "developer"],
            required_characteristics=["technical-detail"],
            synergistic_tags=[("reference", "technical"), ("api", "developer")],
            avoid_combinations=[("beginner", "technical")],
            max_documents=12,
            ideal_share=20,
        ),
        "concept": CategoryConfig(
            name="concept",
            priority=80,
            preferred_tags=["theory", "architecture", "design"],
            required_characteristics=["architecture-overview"],
            synergistic_tags=[("theory", "architecture"), ("design", "principle")],
            avoid_combinations=[("simple", "complex")],
            max_documents=6,
            ideal_share=20,
        ),
        "example": CategoryConfig(
            name="example",
            priority=75,
            preferred_tags=["practical", "code", "sample"],
            required_characteristics=["code-sample"],
            synergistic_tags=[("practical", "code"), ("sample", "working")],
            avoid_combinations=[("simple", "complex")],
            max_documents=15,
            ideal_share=20,
        ),
        "reference": CategoryConfig(
            name="reference",
            priority=70,
            preferred_tags=["detailed", "comprehensive", "lookup"],
            required_characteristics=["reference-info"],
            synergistic_tags=[("detailed", "comprehensive"), ("lookup", "searchable")],
            max_documents=20,
            ideal_share=10,
        ),
        "llms": CategoryConfig(
            name="llms",
            priority=65,
            preferred_tags=["llms", "optimized", "concise"],
            required_characteristics=["concise-structure"],
            synergistic_tags=[("llms", "optimized"), ("concise", "structured")],
            avoid_combinations=[("verbose", "concise")],
            max_documents=25,
            ideal_share=5,
        ),
    }

    tags = {
        "beginner": TagConfig(
            name="beginner",
            weight=1.2,
            compatible_with=["practical", "step-by-step", "core"],
            incompatible_with=["advanced", "expert"],
            audience=["beginners"],
            importance="high",
        ),
        "intermediate": TagConfig(
            name="intermediate",
            weight=1.0,
            compatible_with=["practical", "technical"],
            audience=["framework-users"],
            importance="medium",
        ),
        "advanced": TagConfig(
            name="advanced",
            weight=0.9,
            compatible_with=["technical", "architecture", "performance"],
            incompatible_with=["beginner"],
            audience=["experts"],
            importance="medium",
        ),
        "expert": TagConfig(
            name="expert",
            weight=0.8,
            compatible_with=["technical", "architecture"],
            incompatible_with=["beginner"],
            audience=["experts", "contributors"],
            importance="low",
        ),
        "core": TagConfig(name="core", weight=1.5, compatible_with=["beginner", "practical"], importance="critical"),
        "practical": TagConfig(name="practical", weight=1.1, compatible_with=["beginner", "example"]),
        "step-by-step": TagConfig(name="step-by-step", weight=1.0, compatible_with=["beginner"]),
        "technical": TagConfig(name="technical", weight=0.9, compatible_with=["advanced", "reference"]),
        "reference": TagConfig(name="reference", weight=0.8, compatible_with=["technical"]),
        "architecture": TagConfig(name="architecture", weight=0.9, compatible_with=["advanced"]),
        "performance": TagConfig(name="performance", weight=0.8, compatible_with=["advanced"]),
        "example": TagConfig(name="example", weight=1.0, compatible_with=["practical"]),
        "troubleshooting": TagConfig(name="troubleshooting", weight=0.9),
        "quick-start": TagConfig(
            name="quick-start",
            weight=1.3,
            compatible_with=["beginner", "practical"],
            audience=["beginners"],
            importance="high",
        ),
    }

    strategies = {
        "greedy": StrategyConfig(
            name="greedy", algorithm="greedy", priority_weight=0.6, tag_weight=0.25, dependency_weight=0.15
        ),
        "balanced": StrategyConfig(
            name="balanced", algorithm="balanced", priority_weight=0.5, tag_weight=0.3, dependency_weight=0.2
        ),
        "quality-focused": StrategyConfig(
            name="quality-focused",
            algorithm="quality-focused",
            priority_weight=0.7,
            tag_weight=0.2,
            dependency_weight=0.1,
        ),
        "diverse": StrategyConfig(
            name="diverse",
            algorithm="diverse",
            priority_weight=0.4,
            tag_weight=0.4,
            dependency_weight=0.2,
            max_documents_per_category=2,
        ),
    }

    return EngineConfig(categories=categories, tags=tags, strategies=strategies)


def load_config(config_path: Path) -> EngineConfig:
    """Load configuration from disk, layering file sections over the built-in defaults."""
    config_file = _resolve_config_path(config_path)
    config = _default_config()
    config.root = config_file.parent.resolve()

    if not config_file.exists():
        return config.validate()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    categories_data = _as_dict(data.get("categories"))
    for name, raw in categories_data.items():
        config.categories[str(name)] = _parse_category(str(name), _as_dict(raw), config.categories.get(str(name)))

    tags_data = _as_dict(data.get("tags"))
    for name, raw in tags_data.items():
        config.tags[str(name)] = _parse_tag(str(name), _as_dict(raw))

    strategies_data = _as_dict(data.get("strategies"))
    for name, raw in strategies_data.items():
        config.strategies[str(name)] = _parse_strategy(str(name), _as_dict(raw))

    default_strategy = _as_str(data.get("default_strategy"))
    if default_strategy:
        config.default_strategy = default_strategy

    dependency_data = _as_dict(data.get("dependencies"))
    if dependency_data:
        rules = config.dependencies
        max_depth = _as_int(dependency_data.get("max_depth"))
        include_optional = _as_bool(dependency_data.get("include_optional"))
        resolution = _as_str(dependency_data.get("conflict_resolution"))
        config.dependencies = DependencySettings(
            max_depth=rules.max_depth if max_depth is None else max_depth,
            include_optional=rules.include_optional if include_optional is None else include_optional,
            conflict_resolution=resolution or rules.conflict_resolution,
        )

    conflict_data = _as_dict(data.get("conflicts"))
    if conflict_data:
        settings = config.conflicts
        if "conflicting_audiences" in conflict_data:
            settings.conflicting_audiences = _as_pairs(conflict_data.get("conflicting_audiences"))
        if "exclusive_categories" in conflict_data:
            settings.exclusive_categories = _as_pairs(conflict_data.get("exclusive_categories"))
        threshold = _as_float(conflict_data.get("similarity_threshold"))
        if threshold is not None:
            settings.similarity_threshold = threshold
        gap = _as_int(conflict_data.get("complexity_gap"))
        if gap is not None:
            settings.complexity_gap = gap

    composition_data = _as_dict(data.get("composition"))
    if composition_data:
        reserve = _as_int(composition_data.get("reserve"))
        toc_limit = _as_int(composition_data.get("toc_character_limit"))
        limits = [value for value in (_as_int(item) for item in _as_list(composition_data.get("standard_limits"))) if value]
        if reserve is not None:
            config.composition.reserve = reserve
        if toc_limit is not None:
            config.composition.toc_character_limit = toc_limit
        if limits:
            config.composition.standard_limits = sorted(set(limits))

    quality_data = _as_dict(data.get("quality"))
    if quality_data:
        hard_minimum = _as_float(quality_data.get("hard_minimum"))
        soft_target = _as_float(quality_data.get("soft_target"))
        min_documents = _as_int(quality_data.get("min_documents"))
        if hard_minimum is not None:
            config.quality.hard_minimum = hard_minimum
        if soft_target is not None:
            config.quality.soft_target = soft_target
        if min_documents is not None:
            config.quality.min_documents = min_documents

    return config.validate()


def _parse_category(name: str, data: Dict[str, Any], base: Optional[CategoryConfig]) -> CategoryConfig:
    base = base or CategoryConfig(name=name)
    priority = _as_int(data.get("priority"))
    max_documents = _as_int(data.get("max_documents"))
    ideal_share = _as_float(data.get("ideal_share"))
    return CategoryConfig(
        name=name,
        priority=base.priority if priority is None else priority,
        preferred_tags=_as_str_list(data["preferred_tags"]) if "preferred_tags" in data else base.preferred_tags,
        required_characteristics=(
            _as_str_list(data["required_characteristics"])
            if "required_characteristics" in data
            else base.required_characteristics
        ),
        synergistic_tags=(
            _as_groups(data["synergistic_tags"]) if "synergistic_tags" in data else base.synergistic_tags
        ),
        avoid_combinations=(
            _as_groups(data["avoid_combinations"]) if "avoid_combinations" in data else base.avoid_combinations
        ),
        max_documents=base.max_documents if max_documents is None else max_documents,
        ideal_share=base.ideal_share if ideal_share is None else ideal_share,
    )


def _parse_tag(name: str, data: Dict[str, Any]) -> TagConfig:
    weight = _as_float(data.get("weight"))
    return TagConfig(
        name=name,
        weight=1.0 if weight is None else weight,
        compatible_with=_as_str_list(data.get("compatible_with")),
        incompatible_with=_as_str_list(data.get("incompatible_with")),
        audience=_as_str_list(data.get("audience")),
        importance=_as_str(data.get("importance")) or "optional",
    )


def _parse_strategy(name: str, data: Dict[str, Any]) -> StrategyConfig:
    weights = _as_dict(data.get("weights"))
    bonus = _as_float(data.get("category_bonus"))
    per_category = _as_int(data.get("max_documents_per_category"))
    priority_weight = _as_float(weights.get("priority"))
    tag_weight = _as_float(weights.get("tag"))
    dependency_weight = _as_float(weights.get("dependency"))
    if priority_weight is None or tag_weight is None or dependency_weight is None:
        raise ConfigError(f"strategies.{name}: weights.priority, weights.tag and weights.dependency are required")
    return StrategyConfig(
        name=name,
        algorithm=_as_str(data.get("algorithm")) or name,
        priority_weight=priority_weight,
        tag_weight=tag_weight,
        dependency_weight=dependency_weight,
        category_bonus=0.1 if bonus is None else bonus,
        max_documents_per_category=2 if per_category is None else per_category,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [] if value is None else [value]


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def _as_groups(value: Any) -> List[Tuple[str, ...]]:
    groups: List[Tuple[str, ...]] = []
    for item in _as_list(value):
        members = tuple(_as_str_list(item))
        if len(members) >= 2:
            groups.append(members)
    return groups


def _as_pairs(value: Any) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for group in _as_groups(value):
        if len(group) != 2:
            raise ConfigError(f"Expected a pair of names, got {list(group)}")
        pairs.append((group[0], group[1]))
    return pairs


__all__ = [
    "ALGORITHMS",
    "CATEGORIES",
    "CONFIG_FILENAME",
    "CONFLICT_RESOLUTIONS",
    "CategoryConfig",
    "CompositionSettings",
    "ConfigError",
    "ConflictSettings",
    "DependencySettings",
    "EngineConfig",
    "QualitySettings",
    "StrategyConfig",
    "TagConfig",
    "default_config",
    "load_config",
]
