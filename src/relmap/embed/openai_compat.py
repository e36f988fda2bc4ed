"""OpenAI-compatible embedding provider.

Works with any server implementing the OpenAI /v1/embeddings API:
OpenAI, OpenRouter, LiteLLM proxy, vLLM, Ollama (OpenAI-compat mode), etc.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
from typing import TYPE_CHECKING
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from relmap.embed.base import BaseEmbedder
from relmap.exceptions import EmbeddingError

if TYPE_CHECKING:
    from relmap.config import RelmapConfig

__all__ = ["OpenAICompatEmbedder"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatEmbedder(BaseEmbedder):
    """Embedding provider using any OpenAI-compatible /v1/embeddings endpoint.

    This is the default embedding provider for relmap
    (``text-embedding-3-small``, 1536 dimensions).

    Config fields used::

        [embedding]
        provider = "openai"
        model = "text-embedding-3-small"
        api_key_env = "OPENAI_API_KEY"   # env var name; empty = no auth
        base_url = ""                     # empty = https://api.openai.com/v1
        timeout = 60
    """

    def __init__(self, config: RelmapConfig) -> None:
        self._model = config.embedding.model
        self._base_url = (config.embedding.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self._timeout = config.embedding.timeout

        # Resolve API key from environment variable
        self._api_key: str | None = None
        if config.embedding.api_key_env:
            self._api_key = os.environ.get(config.embedding.api_key_env)
            if not self._api_key:
                logger.warning(
                    "API key env var %s is not set; requests may fail",
                    config.embedding.api_key_env,
                )

    def embed(self, text: str) -> list[float]:
        """Generate an embedding via the /embeddings endpoint.

        Raises:
            EmbeddingError: On connection, HTTP or response-format errors.
        """
        url = f"{self._base_url}/embeddings"
        payload = json.dumps({"model": self._model, "input": [text]}).encode("utf-8")

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = Request(url, data=payload, headers=headers)

        try:
            with urlopen(req, timeout=self._timeout) as resp:
                body = resp.read()
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise EmbeddingError(f"Embedding API returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise EmbeddingError(f"Embedding API error (HTTP {e.code}): {e.reason}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise EmbeddingError(
                f"Embedding API not reachable at {self._base_url}. Error: {e}"
            ) from e

        try:
            items = data["data"]
            embeddings: list[list[float]] = [item["embedding"] for item in items]
        except (KeyError, TypeError) as e:
            raise EmbeddingError(
                f"Unexpected response format from {url}: missing 'embedding' field"
            ) from e

        if len(embeddings) != 1:
            raise EmbeddingError(f"API returned {len(embeddings)} embeddings for 1 input")

        return [float(v) for v in embeddings[0]]
