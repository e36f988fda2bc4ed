"""Abstract base class for embedding providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

__all__ = ["BaseEmbedder"]

logger = logging.getLogger(__name__)


class BaseEmbedder(ABC):
    """Base class for all embedding providers.

    Subclasses turn one text into one fixed-dimension vector. Implementations
    must be safe to call from several threads at once: the retrieval phase
    embeds files in parallel batches.
    """

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text.

        Args:
            text: Category query or file text.

        Returns:
            Embedding vector as a list of floats.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
