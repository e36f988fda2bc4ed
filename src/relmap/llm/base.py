"""Abstract base class for structured classification providers."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from relmap.exceptions import MalformedClassificationError

__all__ = ["BaseClassifier", "decode_json_object"]

logger = logging.getLogger(__name__)

# ```json ... ``` wrapper some models put around structured output
_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*\n(.*?)\n?```\s*$", re.DOTALL)


class BaseClassifier(ABC):
    """Base class for language-model classifiers returning structured objects.

    ``temperature`` is the determinism knob: lower values give more
    consistent labeling across runs.
    """

    @abstractmethod
    def classify(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Ask the model for an object conforming to ``schema``.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: Task payload.
            schema: JSON Schema the response object must follow.

        Returns:
            The decoded JSON object. Conformance to ``schema`` beyond being an
            object is checked by the caller.

        Raises:
            LlmError: If the provider is unreachable, times out, or errors.
            MalformedClassificationError: If the output is not a JSON object.
        """


def decode_json_object(text: str) -> dict[str, Any]:
    """Decode model output text into a JSON object.

    Tolerates a surrounding markdown code fence.

    Raises:
        MalformedClassificationError: If the text is not a JSON object.
    """
    if not text or not text.strip():
        raise MalformedClassificationError("Model returned an empty response")

    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        preview = text.strip()[:80]
        raise MalformedClassificationError(
            f"Model output is not valid JSON ({e.msg} at pos {e.pos}): {preview!r}"
        ) from e

    if not isinstance(data, dict):
        raise MalformedClassificationError(
            f"Model output must be a JSON object, got {type(data).__name__}"
        )
    return data
