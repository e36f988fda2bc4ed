"""Ollama chat provider using the /api/chat endpoint with structured outputs."""

from __future__ import annotations

import http.client
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from relmap.exceptions import LlmError
from relmap.llm.base import BaseClassifier, decode_json_object

if TYPE_CHECKING:
    from relmap.config import RelmapConfig

__all__ = ["OllamaClassifier"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaClassifier(BaseClassifier):
    """Classifier backed by a local Ollama model.

    The JSON schema is passed as the ``format`` field so Ollama constrains
    decoding to it.

    Config fields used::

        [llm]
        provider = "ollama"
        model = "llama3.2"
        base_url = ""           # empty = http://localhost:11434
        temperature = 0.1
        max_output_tokens = 8000
        timeout = 120
    """

    def __init__(self, config: RelmapConfig) -> None:
        self._model = config.llm.model
        self._base_url = (config.llm.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self._temperature = config.llm.temperature
        self._max_tokens = config.llm.max_output_tokens
        self._timeout = config.llm.timeout

    def classify(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        url = f"{self._base_url}/api/chat"
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "format": schema,
            "stream": False,
            "options": {"temperature": self._temperature, "num_predict": self._max_tokens},
        }
        req = Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

        try:
            with urlopen(req, timeout=self._timeout) as resp:
                body = resp.read()
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise LlmError(f"Ollama returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise LlmError(f"Ollama API error (HTTP {e.code}): {e.reason}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise LlmError(
                f"Ollama not reachable at {self._base_url}. Is Ollama running? Error: {e}"
            ) from e

        try:
            content = data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise LlmError(f"Unexpected response format from {url}: missing message") from e

        logger.debug("Ollama response: %d chars", len(content or ""))
        return decode_json_object(content)
