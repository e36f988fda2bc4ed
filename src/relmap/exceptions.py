"""Custom exception hierarchy for relmap."""

from __future__ import annotations

__all__ = [
    "ClassificationError",
    "ConfigError",
    "EmbeddingError",
    "IncompleteClassificationError",
    "InputError",
    "LlmError",
    "MalformedClassificationError",
    "PipelineError",
    "PluginError",
    "PromptError",
    "RelmapError",
    "RetrievalError",
]


class RelmapError(Exception):
    """Base exception for all relmap errors."""


class ConfigError(RelmapError):
    """Raised when configuration loading or validation fails."""


class InputError(RelmapError):
    """Raised when mapping input or result files cannot be read, parsed or written."""


class PluginError(RelmapError):
    """Raised when provider lookup or registration fails."""


class EmbeddingError(RelmapError):
    """Raised when an embedding provider fails to produce a vector."""


class RetrievalError(RelmapError):
    """Raised when the embedding retrieval phase cannot compute similarities.

    Carries the category or file path that was being embedded when the
    failure happened, if known.
    """

    def __init__(self, message: str, *, domain: str = "", subject: str = "") -> None:
        super().__init__(message)
        self.domain = domain
        self.subject = subject


class LlmError(RelmapError):
    """Raised when a classification provider call fails (network, HTTP, timeout)."""


class ClassificationError(RelmapError):
    """Base class for classifier output that cannot be used as-is."""


class MalformedClassificationError(ClassificationError):
    """Raised when classifier output does not parse as the expected schema."""


class IncompleteClassificationError(ClassificationError):
    """Raised when classifier output omits candidate paths or adds unknown ones."""

    def __init__(
        self,
        message: str,
        *,
        missing: tuple[str, ...] = (),
        extra: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.missing = missing
        self.extra = extra


class PromptError(RelmapError):
    """Raised when a prompt template cannot be found or rendered."""


class PipelineError(RelmapError):
    """Raised when pipeline orchestration fails."""
