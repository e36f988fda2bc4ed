"""Deterministic tiers derived from embedding scores.

Used when every classifier attempt failed, so the pipeline still produces
a usable (if less precise) mapping.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relmap.types import AssessmentResult, Provenance, RelevanceTier, TierAssignment

if TYPE_CHECKING:
    from relmap.types import FileCandidate

__all__ = ["heuristic_assessment", "heuristic_tier"]

logger = logging.getLogger(__name__)

_PRIMARY_ABOVE = 0.6
_SECONDARY_ABOVE = 0.4


def heuristic_tier(embedding_score: float) -> RelevanceTier:
    """Map an embedding score onto a tier by fixed bands."""
    if embedding_score > _PRIMARY_ABOVE:
        return RelevanceTier.PRIMARY
    if embedding_score > _SECONDARY_ABOVE:
        return RelevanceTier.SECONDARY
    return RelevanceTier.SUPPORTING


def heuristic_assessment(
    candidates: dict[str, tuple[FileCandidate, ...]],
    attempts: int = 0,
) -> AssessmentResult:
    """Assign every candidate its score-band tier, tagged as heuristic."""
    logger.warning(
        "Using heuristic tiers from embedding scores for %d candidates",
        sum(len(files) for files in candidates.values()),
    )
    assignments = {
        domain: tuple(
            TierAssignment(
                path=c.path,
                tier=heuristic_tier(c.embedding_score),
                provenance=Provenance.HEURISTIC,
            )
            for c in files
        )
        for domain, files in candidates.items()
    }
    return AssessmentResult(
        assignments=assignments,
        provenance=Provenance.HEURISTIC,
        attempts=attempts,
    )
