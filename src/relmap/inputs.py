"""Readers for the upstream collaborators' JSON shapes, and result writing.

Upstream stages hand over three things: the filtered ``path → content``
map, static file summaries, and requirements normalized into categories
per domain. These helpers turn their JSON into typed relmap objects.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from relmap.exceptions import InputError
from relmap.types import FileSummary, FileType, RequirementCategory

if TYPE_CHECKING:
    from pathlib import Path

    from relmap.types import NormalizedRequirements, RelevanceMappingResult

__all__ = [
    "MappingInput",
    "load_mapping_input",
    "parse_files_map",
    "parse_requirements",
    "parse_summaries",
    "save_result",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingInput:
    """Everything :meth:`RelevanceMapper.execute` needs, read from one bundle."""

    files_map: dict[str, str]
    summaries: list[FileSummary]
    requirements: NormalizedRequirements
    options: dict[str, Any] = field(default_factory=dict)


def _str_tuple(value: object, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InputError(f"{where} must be a list of strings")
    return tuple(value)


def parse_requirements(data: object) -> NormalizedRequirements:
    """Parse ``{domain: {"categories": [{title, requirements, keywords}]}}``.

    A bare list of categories per domain is accepted too.
    """
    if not isinstance(data, dict):
        raise InputError("Normalized requirements must be an object keyed by domain")

    requirements: NormalizedRequirements = {}
    for domain, group in data.items():
        raw_categories = group.get("categories", []) if isinstance(group, dict) else group
        if not isinstance(raw_categories, list):
            raise InputError(f"{domain}.categories must be a list")

        categories: list[RequirementCategory] = []
        for i, raw in enumerate(raw_categories):
            if not isinstance(raw, dict) or not isinstance(raw.get("title"), str):
                raise InputError(f"{domain}.categories[{i}] needs a 'title' string")
            categories.append(
                RequirementCategory(
                    title=raw["title"],
                    requirements=_str_tuple(
                        raw.get("requirements"), f"{domain}.categories[{i}].requirements"
                    ),
                    keywords=_str_tuple(raw.get("keywords"), f"{domain}.categories[{i}].keywords"),
                )
            )
        requirements[domain] = tuple(categories)

    return requirements


def parse_summaries(data: object) -> list[FileSummary]:
    """Parse ``[{path, size, type, summary: {head, imports, body_sample}}]``."""
    if not isinstance(data, list):
        raise InputError("File summaries must be a list")

    summaries: list[FileSummary] = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
            raise InputError(f"filesContentSummary[{i}] needs a 'path' string")

        summary = raw.get("summary") or {}
        if not isinstance(summary, dict):
            raise InputError(f"filesContentSummary[{i}].summary must be an object")

        try:
            file_type = FileType(raw.get("type", FileType.SOURCE.value))
        except ValueError as e:
            raise InputError(
                f"filesContentSummary[{i}] has unknown type {raw.get('type')!r}"
            ) from e

        try:
            size = int(raw.get("size", 0))
        except (TypeError, ValueError) as e:
            raise InputError(f"filesContentSummary[{i}].size must be an integer") from e

        summaries.append(
            FileSummary(
                path=raw["path"],
                size=size,
                type=file_type,
                head=str(summary.get("head", "")),
                imports=_str_tuple(summary.get("imports"), f"filesContentSummary[{i}].imports"),
                body_sample=str(summary.get("body_sample", "")),
            )
        )
    return summaries


def parse_files_map(data: object) -> dict[str, str]:
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise InputError("filteredFilesMap must map path strings to content strings")
    return dict(data)


def load_mapping_input(path: Path) -> MappingInput:
    """Load a JSON bundle with ``filteredFilesMap``, ``filesContentSummary``,
    ``normalizedRequirements`` and optional ``options``.

    Raises:
        InputError: If the file cannot be read or does not match the shape.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InputError(f"Failed to read mapping input {path}: {e}") from e

    if not isinstance(data, dict):
        raise InputError(f"Mapping input {path} must be a JSON object")

    for key in ("filteredFilesMap", "filesContentSummary", "normalizedRequirements"):
        if key not in data:
            raise InputError(f"Mapping input {path} is missing '{key}'")

    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise InputError("options must be an object")

    bundle = MappingInput(
        files_map=parse_files_map(data["filteredFilesMap"]),
        summaries=parse_summaries(data["filesContentSummary"]),
        requirements=parse_requirements(data["normalizedRequirements"]),
        options=_options_to_snake_case(options),
    )
    logger.info(
        "Loaded %d files, %d summaries, %d domains from %s",
        len(bundle.files_map),
        len(bundle.summaries),
        len(bundle.requirements),
        path,
    )
    return bundle


def _options_to_snake_case(options: dict[str, Any]) -> dict[str, Any]:
    """``embeddingTopK`` → ``embedding_top_k``; snake_case keys pass through."""
    converted: dict[str, Any] = {}
    for key, value in options.items():
        snake = "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in key)
        converted[snake] = value
    return converted


def save_result(result: RelevanceMappingResult, path: Path) -> None:
    """Write ``result.to_dict()`` as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.write_text(json.dumps(result.to_dict(), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise InputError(f"Failed to write result to {path}: {e}") from e
    logger.info("Wrote relevance mapping to %s", path)
