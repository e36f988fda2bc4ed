"""Shared fixtures for relmap tests."""

from __future__ import annotations

import os

import pytest

# Rich wraps non-TTY output at 80 columns; widen it so long tmp paths don't split messages.
os.environ.setdefault("COLUMNS", "200")

from relmap.types import FileSummary, FileType, RequirementCategory


@pytest.fixture
def requirements() -> dict[str, tuple[RequirementCategory, ...]]:
    """Two domains, one category each."""
    return {
        "functional_requirements": (
            RequirementCategory(
                title="Gestão de Entregas",
                requirements=("Create deliveries", "Track delivery status"),
                keywords=("delivery", "shipment"),
            ),
        ),
        "non_functional_requirements": (
            RequirementCategory(
                title="Performance",
                requirements=("Respond within 200ms",),
                keywords=("latency", "cache"),
            ),
        ),
    }


@pytest.fixture
def summaries() -> list[FileSummary]:
    return [
        FileSummary(
            path="src/deliveries/CreateDeliveryController.ts",
            size=2048,
            type=FileType.SOURCE,
            head="export class CreateDeliveryController {",
            imports=("express", "./CreateDeliveryUseCase"),
            body_sample="async handle(req, res) { ... }",
        ),
        FileSummary(
            path="src/cache/redis.ts",
            size=512,
            type=FileType.INFRA,
            head="import Redis from 'ioredis'",
            imports=("ioredis",),
            body_sample="export const cache = new Redis()",
        ),
        FileSummary(
            path="README.md",
            size=100,
            type=FileType.CONFIG,
            head="# Project",
        ),
    ]


@pytest.fixture
def files_map() -> dict[str, str]:
    return {
        "src/deliveries/CreateDeliveryController.ts": "export class CreateDeliveryController {}",
        "src/cache/redis.ts": "export const cache = new Redis()",
        "README.md": "# Project",
    }
