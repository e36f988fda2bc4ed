"""Embedding capability — abstract provider interface and concrete providers."""

from relmap.embed.base import BaseEmbedder
from relmap.embed.chromadb_embed import ChromaDBEmbedder
from relmap.embed.ollama import OllamaEmbedder
from relmap.embed.openai_compat import OpenAICompatEmbedder
from relmap.registry import default_registry

__all__ = ["BaseEmbedder", "ChromaDBEmbedder", "OllamaEmbedder", "OpenAICompatEmbedder"]

# Register built-in embedding providers
default_registry.register("embedding", "chromadb", lambda cfg: ChromaDBEmbedder(cfg))
default_registry.register("embedding", "ollama", lambda cfg: OllamaEmbedder(cfg))
default_registry.register("embedding", "openai", lambda cfg: OpenAICompatEmbedder(cfg))
