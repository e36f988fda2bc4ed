"""Ollama embedding provider using the /api/embed endpoint.

Local alternative to the hosted default — uses a running Ollama instance
with ``nomic-embed-text`` or any other pulled embedding model.
"""

from __future__ import annotations

import http.client
import json
import logging
from typing import TYPE_CHECKING
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from relmap.embed.base import BaseEmbedder
from relmap.exceptions import EmbeddingError

if TYPE_CHECKING:
    from relmap.config import RelmapConfig

__all__ = ["OllamaEmbedder"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaEmbedder(BaseEmbedder):
    """Embedding provider using a local Ollama instance.

    Config fields used::

        [embedding]
        provider = "ollama"
        model = "nomic-embed-text"
        base_url = ""           # empty = http://localhost:11434
        timeout = 60
    """

    def __init__(self, config: RelmapConfig) -> None:
        self._model = config.embedding.model
        self._base_url = (config.embedding.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self._timeout = config.embedding.timeout

    def embed(self, text: str) -> list[float]:
        """Generate an embedding via Ollama.

        Raises:
            EmbeddingError: If Ollama is not reachable or returns an error.
        """
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": self._model, "input": [text]}).encode("utf-8")
        req = Request(url, data=payload, headers={"Content-Type": "application/json"})

        try:
            with urlopen(req, timeout=self._timeout) as resp:
                body = resp.read()
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise EmbeddingError(f"Ollama returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise EmbeddingError(f"Ollama API error (HTTP {e.code}): {e.reason}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise EmbeddingError(
                f"Ollama not reachable at {self._base_url}. Is Ollama running? Error: {e}"
            ) from e

        embeddings: list[list[float]] = data.get("embeddings", [])
        if len(embeddings) != 1:
            raise EmbeddingError(f"Ollama returned {len(embeddings)} embeddings for 1 input")

        return [float(v) for v in embeddings[0]]
