"""Configuration system for relmap.

Manages run configuration via a TOML file (``relmap.toml``) with typed
dataclasses and sensible defaults for all values. The ``[mapping]`` section
is an immutable :class:`MappingOptions` that is passed by value into every
pipeline phase.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

import tomli_w

if sys.version_info >= (3, 12):
    import tomllib
else:
    import tomli as tomllib

from relmap.exceptions import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

_T = TypeVar("_T")

__all__ = [
    "CONFIG_FILE",
    "EmbeddingConfig",
    "LlmConfig",
    "MappingOptions",
    "RelmapConfig",
    "default_config",
    "load_config",
    "save_config",
]

logger = logging.getLogger(__name__)

CONFIG_FILE = "relmap.toml"


@dataclass
class EmbeddingConfig:
    """[embedding] section."""

    provider: str = "openai"
    model: str = "text-embedding-3-small"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str = ""
    timeout: float = 60.0


@dataclass
class LlmConfig:
    """[llm] section."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str = ""
    temperature: float = 0.1
    max_output_tokens: int = 8000
    timeout: float = 120.0


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class MappingOptions:
    """[mapping] section — tuning knobs for the three mapping phases.

    Frozen: use :meth:`with_overrides` to derive a variant.
    """

    # Phase 1: embedding retrieval
    embedding_top_k: int = 20
    embedding_threshold: float = 0.55
    embedding_retry_thresholds: tuple[float, ...] = (0.45, 0.35, 0.25, 0.15)
    min_candidates_for_phase2: int = 10
    max_tokens_per_file: int = 6000
    parallel_batch_size: int = 10

    # Phase 2: assessment
    max_attempts: int = 3
    retry_delay: float = 1.0

    # Phase 3: fusion
    hybrid_score_threshold: float = 0.20

    def __post_init__(self) -> None:
        for name in (
            "embedding_top_k",
            "min_candidates_for_phase2",
            "max_tokens_per_file",
            "parallel_batch_size",
            "max_attempts",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

        for name in ("embedding_threshold", "retry_delay", "hybrid_score_threshold"):
            object.__setattr__(self, name, _as_float(name, getattr(self, name)))

        # TOML arrays arrive as lists
        thresholds = self.embedding_retry_thresholds
        if not isinstance(thresholds, (list, tuple)):
            raise ConfigError(
                f"embedding_retry_thresholds must be a list of numbers, got {thresholds!r}"
            )
        object.__setattr__(
            self,
            "embedding_retry_thresholds",
            tuple(_as_float("embedding_retry_thresholds", t) for t in thresholds),
        )

        for threshold in (self.embedding_threshold, *self.embedding_retry_thresholds):
            if not -1.0 <= threshold <= 1.0:
                raise ConfigError(f"Similarity thresholds must lie in [-1, 1], got {threshold}")

        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must be >= 0, got {self.retry_delay}")

    def with_overrides(self, **overrides: Any) -> MappingOptions:
        """Return a copy with the given fields replaced.

        ``None`` values are skipped so optional CLI flags can be passed
        straight through.

        Raises:
            ConfigError: If an override names an unknown option.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown mapping option(s): {', '.join(unknown)}")

        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)


@dataclass
class RelmapConfig:
    """Root configuration combining all sections."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LlmConfig = field(default_factory=LlmConfig)
    mapping: MappingOptions = field(default_factory=MappingOptions)


_SECTIONS: dict[str, type] = {
    "embedding": EmbeddingConfig,
    "llm": LlmConfig,
    "mapping": MappingOptions,
}


def default_config() -> RelmapConfig:
    """Return a config with all default values."""
    return RelmapConfig()


def _section_to_dict(obj: object) -> dict[str, object]:
    """Convert a dataclass section to a dict for TOML serialization."""
    data = dict(vars(obj))
    for key, value in data.items():
        if isinstance(value, tuple):
            data[key] = list(value)
    return data


def save_config(config: RelmapConfig, path: Path) -> None:
    """Save configuration to a TOML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {name: _section_to_dict(getattr(config, name)) for name in _SECTIONS}
    try:
        with path.open("wb") as f:
            tomli_w.dump(data, f)
        logger.info("Saved config to %s", path)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


def _load_section(cls: type[_T], data: dict[str, object]) -> _T:
    """Load a dataclass section from a dict, ignoring unknown keys."""
    known_fields = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered = {k: v for k, v in data.items() if k in known_fields}
    try:
        return cls(**filtered)
    except TypeError as e:
        raise ConfigError(f"Invalid values in [{cls.__name__}]: {e}") from e


def load_config(path: Path) -> RelmapConfig:
    """Load configuration from a TOML file.

    Missing sections or keys get default values.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_bytes()
        data = tomllib.loads(raw.decode("utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    config = RelmapConfig()
    for name, cls in _SECTIONS.items():
        if name in data:
            section = data[name]
            if not isinstance(section, dict):
                raise ConfigError(f"[{name}] must be a table in {path}")
            setattr(config, name, _load_section(cls, section))

    logger.info("Loaded config from %s", path)
    return config
