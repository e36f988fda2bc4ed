"""Structured classification capability — abstract interface and chat providers."""

from relmap.llm.base import BaseClassifier
from relmap.llm.ollama import OllamaClassifier
from relmap.llm.openai_compat import OpenAICompatClassifier
from relmap.registry import default_registry

__all__ = ["BaseClassifier", "OllamaClassifier", "OpenAICompatClassifier"]

# Register built-in classification providers
default_registry.register("llm", "ollama", lambda cfg: OllamaClassifier(cfg))
default_registry.register("llm", "openai", lambda cfg: OpenAICompatClassifier(cfg))
