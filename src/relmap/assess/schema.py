"""Expected response shape for the assessment call, and its validation.

The classifier must answer with one array per domain, each entry
``{"path": ..., "assessment": <tier>}``, covering exactly the candidate
paths of that domain.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from relmap.exceptions import IncompleteClassificationError, MalformedClassificationError
from relmap.llm.base import decode_json_object
from relmap.types import RelevanceTier

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = ["build_response_schema", "parse_assessment", "validate_completeness"]

logger = logging.getLogger(__name__)

_TIER_NAMES = [tier.value for tier in RelevanceTier]

# How many offending paths to show in log lines and error messages.
_PREVIEW = 5


def build_response_schema(domains: Iterable[str]) -> dict[str, Any]:
    """Build the JSON Schema the classifier response must follow."""
    item = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Exact file path from the candidate list",
            },
            "assessment": {"type": "string", "enum": _TIER_NAMES},
        },
        "required": ["path", "assessment"],
        "additionalProperties": False,
    }
    domain_list = list(domains)
    return {
        "type": "object",
        "properties": {
            domain: {
                "type": "array",
                "items": item,
                "description": f"Assessments for every {domain} candidate",
            }
            for domain in domain_list
        },
        "required": domain_list,
        "additionalProperties": False,
    }


def _parse_entry(domain: str, index: int, entry: object) -> tuple[str, RelevanceTier]:
    if not isinstance(entry, dict):
        raise MalformedClassificationError(f"{domain}[{index}] is not an object")

    path = entry.get("path")
    if not isinstance(path, str) or not path:
        raise MalformedClassificationError(f"{domain}[{index}] has no 'path' string")

    raw_tier = entry.get("assessment")
    if not isinstance(raw_tier, str):
        raise MalformedClassificationError(f"{domain}[{index}] has no 'assessment' string")
    try:
        tier = RelevanceTier(raw_tier.strip().upper())
    except ValueError as e:
        raise MalformedClassificationError(
            f"{domain}[{index}] has unknown assessment {raw_tier!r}"
        ) from e

    return path, tier


def parse_assessment(
    data: object, domains: Iterable[str]
) -> dict[str, list[tuple[str, RelevanceTier]]]:
    """Check the response against the expected shape and extract ``(path, tier)`` pairs.

    ``data`` may be the decoded object or the raw model text.

    Raises:
        MalformedClassificationError: If the object does not follow the schema.
    """
    if isinstance(data, str):
        data = decode_json_object(data)

    if not isinstance(data, dict):
        raise MalformedClassificationError(
            f"Response must be an object, got {type(data).__name__}"
        )

    expected = list(domains)
    unknown = sorted(set(data) - set(expected))
    if unknown:
        raise MalformedClassificationError(f"Response has unexpected keys: {unknown}")

    parsed: dict[str, list[tuple[str, RelevanceTier]]] = {}
    for domain in expected:
        if domain not in data:
            raise MalformedClassificationError(f"Response is missing the '{domain}' array")
        entries = data[domain]
        if not isinstance(entries, list):
            raise MalformedClassificationError(f"'{domain}' must be an array")
        parsed[domain] = [_parse_entry(domain, i, e) for i, e in enumerate(entries)]

    return parsed


def validate_completeness(
    parsed: dict[str, list[tuple[str, RelevanceTier]]],
    expected_paths: dict[str, set[str]],
) -> None:
    """Require every domain's response to name each expected path exactly once.

    Raises:
        IncompleteClassificationError: On missing, unexpected or repeated paths.
    """
    missing: list[str] = []
    extra: list[str] = []
    repeated: list[str] = []

    for domain, expected in expected_paths.items():
        seen: set[str] = set()
        for path, _tier in parsed.get(domain, []):
            if path in seen:
                repeated.append(f"{domain}:{path}")
            seen.add(path)
        missing.extend(f"{domain}:{p}" for p in sorted(expected - seen))
        extra.extend(f"{domain}:{p}" for p in sorted(seen - expected))

    if missing:
        logger.warning("Response missing %d files: %s", len(missing), missing[:_PREVIEW])
    if extra:
        logger.warning("Response has %d extra files: %s", len(extra), extra[:_PREVIEW])
    if repeated:
        logger.warning("Response repeats %d files: %s", len(repeated), repeated[:_PREVIEW])

    if missing or extra or repeated:
        raise IncompleteClassificationError(
            f"Assessment validation failed: {len(missing)} missing, "
            f"{len(extra)} extra, {len(repeated)} repeated files",
            missing=tuple(missing),
            extra=tuple(extra),
        )
