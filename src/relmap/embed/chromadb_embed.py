"""ChromaDB built-in embedding provider using ONNX runtime.

Offline embedding without a server or API key. Uses the
all-MiniLM-L6-v2 model via ONNX; the model is auto-downloaded on
first use (~80MB).
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from chromadb.utils.embedding_functions import DefaultEmbeddingFunction

from relmap.embed.base import BaseEmbedder
from relmap.exceptions import EmbeddingError

if TYPE_CHECKING:
    from relmap.config import RelmapConfig

__all__ = ["ChromaDBEmbedder"]

logger = logging.getLogger(__name__)


class ChromaDBEmbedder(BaseEmbedder):
    """Embedding provider using ChromaDB's built-in ONNX embedding function.

    Uses ``all-MiniLM-L6-v2`` (384 dimensions). Embedding contents are
    truncated by the model at 256 word pieces, so scores are coarser than
    with hosted models.

    Config fields used::

        [embedding]
        provider = "chromadb"
        model = "all-MiniLM-L6-v2"
    """

    _FIXED_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, config: RelmapConfig) -> None:
        if config.embedding.model and config.embedding.model != self._FIXED_MODEL:
            logger.warning(
                "ChromaDB provider only supports %s, ignoring model=%r",
                self._FIXED_MODEL,
                config.embedding.model,
            )

        try:
            self._ef = DefaultEmbeddingFunction()
        except Exception as e:
            raise EmbeddingError(f"Failed to initialize ChromaDB embedding function: {e}") from e

        # ONNX session is shared; serialize calls from the retrieval worker pool
        self._lock = threading.Lock()
        logger.info("ChromaDBEmbedder initialized (ONNX %s)", self._FIXED_MODEL)

    def embed(self, text: str) -> list[float]:
        """Generate an embedding with the local ONNX model.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        try:
            with self._lock:
                vectors = self._ef([text])
        except Exception as e:
            raise EmbeddingError(f"ChromaDB embedding failed: {e}") from e

        if vectors is None or len(vectors) != 1:
            raise EmbeddingError("ChromaDB returned unexpected result for single text")

        return [float(v) for v in vectors[0]]
