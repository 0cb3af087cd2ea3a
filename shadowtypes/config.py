"""
Configuration system for the shadow-type engine.

One ``EngineConfig`` object carries every threshold, toggle, severity and
exception entry the pipeline consumes, so the classifier and strategies can
be exercised without touching extraction or I/O. Validation runs when the
object is built, before any extraction.
"""

import os
import json
import logging
from dataclasses import dataclass, field, replace, fields as dataclass_fields
from pathlib import Path
from typing import Dict, List, Optional, Union, Any

import yaml

from .core.errors import ThresholdMisconfigured
from .core.issues import ADVISORY_ONLY, ALL_CONCEPTS, DEFAULT_SEVERITIES, Severity
from .analyzers.whitelist import WhitelistEntry, load_whitelist_file

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = [".shadowtypes.yml", ".shadowtypes.yaml", "shadowtypes.yml", "shadowtypes.yaml"]
SOURCES = ("ast", "heuristic", "introspect")

DEFAULT_EXCLUDES = ["tests", "test", "build", "dist", "venv", ".venv", "__pycache__"]
DEFAULT_EVENT_TYPES = ["Event", "Signal", "EventHook", "EventEmitter"]
DEFAULT_ROLE_SUFFIXES = [
    "Dto", "Model", "Response", "Request", "Options",
    "Config", "Configuration", "Settings", "Entry",
]
DEFAULT_FORWARDING_SUFFIXES = ["Facade", "Adapter", "Wrapper", "Proxy"]


def _check_ratio(setting: str, value: float) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not (0.0 <= value <= 1.0):
        raise ThresholdMisconfigured(
            f"{setting} must be between 0 and 1, got {value!r}", setting=setting, value=value
        )


def _check_floor(setting: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ThresholdMisconfigured(
            f"{setting} must be a non-negative integer, got {value!r}", setting=setting, value=value
        )


@dataclass
class StrategyConfig:
    """
    Toggles and thresholds for the four similarity strategies.

    A pair is accepted when its score is greater than or equal to the
    threshold and, for overlap strategies, the common count reaches the floor.
    """

    exact_name: bool = True
    structural: bool = True
    name_similarity: bool = True
    overlap: bool = True

    # Levenshtein ratio cutoff for short names
    name_threshold: float = 0.6

    # Interface method/event set overlap
    member_threshold: float = 0.6
    member_min_common: int = 2

    # Enum value set overlap
    value_threshold: float = 0.5
    value_min_common: int = 3

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate configuration parameters."""
        _check_ratio("strategies.name_threshold", self.name_threshold)
        _check_ratio("strategies.member_threshold", self.member_threshold)
        _check_ratio("strategies.value_threshold", self.value_threshold)
        _check_floor("strategies.member_min_common", self.member_min_common)
        _check_floor("strategies.value_min_common", self.value_min_common)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in dataclass_fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyConfig":
        known = {f.name for f in dataclass_fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ThresholdMisconfigured(
                f"Unknown strategy settings: {sorted(unknown)}", setting="strategies", value=sorted(unknown)
            )
        return cls(**data)


@dataclass
class ConventionConfig:
    """Settings for the naming-convention checks (known shadows, suffix families)."""

    retired_types: List[str] = field(default_factory=list)
    suffix_family: bool = True
    role_suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_ROLE_SUFFIXES))
    min_stem_length: int = 3

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        _check_floor("conventions.min_stem_length", self.min_stem_length)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retired_types": list(self.retired_types),
            "suffix_family": self.suffix_family,
            "role_suffixes": list(self.role_suffixes),
            "min_stem_length": self.min_stem_length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConventionConfig":
        return cls(
            retired_types=list(data.get("retired_types", [])),
            suffix_family=bool(data.get("suffix_family", True)),
            role_suffixes=list(data.get("role_suffixes", DEFAULT_ROLE_SUFFIXES)),
            min_stem_length=data.get("min_stem_length", 3),
        )


@dataclass
class ForwardingConfig:
    """Best-effort detection of classes that only forward calls."""

    enabled: bool = True
    name_suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_FORWARDING_SUFFIXES))

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "name_suffixes": list(self.name_suffixes)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForwardingConfig":
        return cls(
            enabled=bool(data.get("enabled", True)),
            name_suffixes=list(data.get("name_suffixes", DEFAULT_FORWARDING_SUFFIXES)),
        )


@dataclass
class EngineConfig:
    """
    Complete configuration for one analysis run.

    ``authoritative_locations`` maps a concept's short type name to the module
    glob patterns where its declaration may live. It is consumed by the layout
    collaborator, not by the similarity engine.
    """

    include: List[str] = field(default_factory=lambda: ["."])
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    source: str = "ast"
    max_workers: int = 1
    event_types: List[str] = field(default_factory=lambda: list(DEFAULT_EVENT_TYPES))

    strategies: StrategyConfig = field(default_factory=StrategyConfig)
    severities: Dict[str, Severity] = field(default_factory=lambda: dict(DEFAULT_SEVERITIES))
    whitelist: List[WhitelistEntry] = field(default_factory=list)
    authoritative_locations: Dict[str, List[str]] = field(default_factory=dict)
    conventions: ConventionConfig = field(default_factory=ConventionConfig)
    forwarding: ForwardingConfig = field(default_factory=ForwardingConfig)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ``ThresholdMisconfigured`` for any invalid setting."""
        self.strategies.validate()
        self.conventions.validate()
        if self.source not in SOURCES:
            raise ThresholdMisconfigured(
                f"source must be one of {SOURCES}, got {self.source!r}", setting="source", value=self.source
            )
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ThresholdMisconfigured(
                f"max_workers must be >= 1, got {self.max_workers!r}",
                setting="max_workers",
                value=self.max_workers,
            )

        merged = dict(DEFAULT_SEVERITIES)
        for concept, value in self.severities.items():
            if concept not in ALL_CONCEPTS:
                raise ThresholdMisconfigured(
                    f"Unknown concept in severities: {concept!r}", setting="severities", value=concept
                )
            try:
                merged[concept] = Severity.parse(value)
            except ValueError as e:
                raise ThresholdMisconfigured(str(e), setting=f"severities.{concept}", value=value)
        for concept in ADVISORY_ONLY:
            if merged[concept] is Severity.HARD:
                raise ThresholdMisconfigured(
                    f"{concept} is best-effort and cannot be configured as Hard",
                    setting=f"severities.{concept}",
                    value="Hard",
                )
        self.severities = merged

    def severity_for(self, concept: str) -> Severity:
        return self.severities.get(concept, Severity.ADVISORY)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "paths": {"include": list(self.include), "exclude": list(self.exclude)},
            "source": self.source,
            "max_workers": self.max_workers,
            "event_types": list(self.event_types),
            "strategies": self.strategies.to_dict(),
            "severities": {k: v.value for k, v in self.severities.items()},
            "whitelist": [entry.to_dict() for entry in self.whitelist],
            "authoritative_locations": {k: list(v) for k, v in self.authoritative_locations.items()},
            "conventions": self.conventions.to_dict(),
            "forwarding": self.forwarding.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "EngineConfig":
        """Create from dictionary representation.

        Args:
            data: Parsed configuration mapping
            base_dir: Directory that relative ``whitelist_files`` resolve against
        """
        paths = data.get("paths", {}) or {}
        entries = [WhitelistEntry.from_dict(item) for item in data.get("whitelist", []) or []]
        for whitelist_file in data.get("whitelist_files", []) or []:
            path = Path(whitelist_file)
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            entries.extend(load_whitelist_file(path))

        return cls(
            include=list(paths.get("include", ["."])),
            exclude=list(paths.get("exclude", DEFAULT_EXCLUDES)),
            source=data.get("source", "ast"),
            max_workers=data.get("max_workers", 1),
            event_types=list(data.get("event_types", DEFAULT_EVENT_TYPES)),
            strategies=StrategyConfig.from_dict(data.get("strategies", {}) or {}),
            severities=dict(data.get("severities", {}) or {}),
            whitelist=entries,
            authoritative_locations={
                k: list(v) for k, v in (data.get("authoritative_locations", {}) or {}).items()
            },
            conventions=ConventionConfig.from_dict(data.get("conventions", {}) or {}),
            forwarding=ForwardingConfig.from_dict(data.get("forwarding", {}) or {}),
        )

    def save_to_file(self, file_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "EngineConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            if path.suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f) or {}
            elif path.suffix == ".json":
                data = json.load(f)
            else:
                raise ThresholdMisconfigured(f"Unsupported config format: {path.suffix}", setting="config")

        logger.info(f"Loaded configuration from {path}")
        return cls.from_dict(data, base_dir=path.parent)

    @classmethod
    def find_and_load(cls, start_path: Union[str, Path]) -> "EngineConfig":
        """Find and load configuration from standard locations."""
        current = Path(start_path).resolve()

        while current != current.parent:
            for name in CONFIG_FILENAMES:
                config_path = current / name
                if config_path.exists():
                    return cls.from_file(config_path)
            current = current.parent

        return cls()


def get_environment_overrides(prefix: str = "SHADOWTYPES_") -> Dict[str, Union[float, int]]:
    """Get configuration overrides from environment variables."""
    overrides: Dict[str, Union[float, int]] = {}

    env_mappings = {
        "NAME_THRESHOLD": ("strategies.name_threshold", float),
        "MEMBER_THRESHOLD": ("strategies.member_threshold", float),
        "MEMBER_MIN_COMMON": ("strategies.member_min_common", int),
        "VALUE_THRESHOLD": ("strategies.value_threshold", float),
        "VALUE_MIN_COMMON": ("strategies.value_min_common", int),
        "MAX_WORKERS": ("max_workers", int),
    }

    for env_suffix, (config_key, config_type) in env_mappings.items():
        env_var = prefix + env_suffix
        env_value = os.getenv(env_var)
        if env_value is not None:
            try:
                overrides[config_key] = config_type(env_value)
            except ValueError as e:
                raise ThresholdMisconfigured(
                    f"Invalid environment variable {env_var}={env_value}: {e}",
                    setting=config_key,
                    value=env_value,
                )

    return overrides


def apply_environment_overrides(config: EngineConfig) -> EngineConfig:
    """Apply environment variable overrides, re-validating the result."""
    overrides = get_environment_overrides()
    if not overrides:
        return config

    strategy_changes = {
        key.split(".", 1)[1]: value for key, value in overrides.items() if key.startswith("strategies.")
    }
    strategies = replace(config.strategies, **strategy_changes) if strategy_changes else config.strategies
    top_level = {key: value for key, value in overrides.items() if "." not in key}
    logger.debug(f"Applying environment overrides: {sorted(overrides)}")
    return replace(config, strategies=strategies, **top_level)


def load_config(root: Union[str, Path], config_path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Resolve the configuration for a run.

    Order: explicit path, ``SHADOWTYPES_CONFIG``, nearest config file above the
    corpus root, defaults. Environment threshold overrides apply last.
    """
    env_config_path = os.getenv("SHADOWTYPES_CONFIG")
    if config_path:
        config = EngineConfig.from_file(config_path)
    elif env_config_path:
        config = EngineConfig.from_file(env_config_path)
    else:
        config = EngineConfig.find_and_load(root)

    return apply_environment_overrides(config)
