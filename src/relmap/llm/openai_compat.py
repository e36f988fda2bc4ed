"""OpenAI-compatible chat provider.

Works with any server implementing the OpenAI /v1/chat/completions API
with ``response_format`` JSON schema support (OpenAI, OpenRouter, LiteLLM,
vLLM).
"""

from __future__ import annotations

import http.client
import json
import logging
import os
from typing import TYPE_CHECKING, Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from relmap.exceptions import LlmError
from relmap.llm.base import BaseClassifier, decode_json_object

if TYPE_CHECKING:
    from relmap.config import RelmapConfig

__all__ = ["OpenAICompatClassifier"]

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatClassifier(BaseClassifier):
    """Classifier using any OpenAI-compatible chat completions endpoint.

    Config fields used::

        [llm]
        provider = "openai"
        model = "gpt-4o-mini"
        api_key_env = "OPENAI_API_KEY"
        base_url = ""                     # empty = https://api.openai.com/v1
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

        self._api_key: str | None = None
        if config.llm.api_key_env:
            self._api_key = os.environ.get(config.llm.api_key_env)
            if not self._api_key:
                logger.warning(
                    "API key env var %s is not set; requests may fail",
                    config.llm.api_key_env,
                )

    def classify(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        url = f"{self._base_url}/chat/completions"
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "relevance_assessment", "schema": schema},
            },
        }

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = Request(url, data=json.dumps(payload).encode("utf-8"), headers=headers)

        try:
            with urlopen(req, timeout=self._timeout) as resp:
                body = resp.read()
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise LlmError(f"Chat API returned invalid JSON from {url}") from e
        except HTTPError as e:
            raise LlmError(f"Chat API error (HTTP {e.code}): {e.reason}") from e
        except (OSError, http.client.HTTPException, ValueError) as e:
            raise LlmError(f"Chat API not reachable at {self._base_url}. Error: {e}") from e

        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LlmError(f"Unexpected response format from {url}: missing choices") from e

        if choice.get("finish_reason") == "length":
            logger.warning("Chat response truncated at max_tokens=%d", self._max_tokens)

        return decode_json_object(content or "")
