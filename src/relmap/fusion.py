"""Fusion phase: combine embedding similarity and assessed tier into one score.

``hybrid_score = embedding_score * tier.weight``. The product lets an
IRRELEVANT tier zero out a high similarity, while a PRIMARY tier keeps the
similarity ordering among the top files intact.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relmap.types import HybridScoredFile, Provenance, RelevanceTier

if TYPE_CHECKING:
    from relmap.types import AssessmentResult, FileCandidate, RetrievalResult, TierAssignment

__all__ = ["fuse", "fuse_domain", "hybrid_score", "score_candidate"]

logger = logging.getLogger(__name__)


def hybrid_score(embedding_score: float, tier: RelevanceTier) -> float:
    return embedding_score * tier.weight


def score_candidate(
    candidate: FileCandidate,
    assignment: TierAssignment | None,
    threshold: float,
    provenance: Provenance = Provenance.ASSESSED,
) -> HybridScoredFile:
    """Score one candidate. A candidate with no assignment counts as IRRELEVANT.

    IRRELEVANT files are never included, whatever the threshold.
    """
    if assignment is None:
        tier = RelevanceTier.IRRELEVANT
    else:
        tier = assignment.tier
        provenance = assignment.provenance

    score = hybrid_score(candidate.embedding_score, tier)
    return HybridScoredFile(
        path=candidate.path,
        embedding_score=candidate.embedding_score,
        llm_assessment=tier,
        hybrid_score=score,
        included=tier is not RelevanceTier.IRRELEVANT and score >= threshold,
        provenance=provenance,
    )


def fuse_domain(
    candidates: tuple[FileCandidate, ...],
    assignments: tuple[TierAssignment, ...],
    threshold: float,
    provenance: Provenance = Provenance.ASSESSED,
) -> tuple[HybridScoredFile, ...]:
    """Score, sort descending and keep files at or above ``threshold``.

    Only candidates are scored: assignments for paths that were not
    retrieved are ignored.
    """
    by_path = {a.path: a for a in assignments}
    missing = [c.path for c in candidates if c.path not in by_path]
    if missing:
        logger.debug("%d candidates without a tier scored as IRRELEVANT", len(missing))

    scored = [score_candidate(c, by_path.get(c.path), threshold, provenance) for c in candidates]
    scored.sort(key=lambda f: (-f.hybrid_score, f.path))
    return tuple(f for f in scored if f.included)


def fuse(
    retrieval: RetrievalResult,
    assessment: AssessmentResult,
    threshold: float,
) -> dict[str, tuple[HybridScoredFile, ...]]:
    """Fuse every domain of a retrieval result with its assessment."""
    logger.info("Phase 3: hybrid scoring (threshold %.2f)", threshold)

    result: dict[str, tuple[HybridScoredFile, ...]] = {}
    for domain, candidates in retrieval.candidates.items():
        included = fuse_domain(
            candidates,
            assessment.assignments.get(domain, ()),
            threshold,
            assessment.provenance,
        )
        result[domain] = included
        logger.info(
            "%s: %d files included (filtered %d below threshold)",
            domain,
            len(included),
            len(candidates) - len(included),
        )
    return result
