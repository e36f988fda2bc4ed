"""Assessment phase: rerank retrieval candidates with a language-model classifier.

One structured request covers every candidate, grouped by domain. The
response must name exactly the candidate set; malformed or incomplete
answers are retried with escalating prompts, and when every attempt fails
the tiers are derived from embedding scores instead. Failures here never
reach the caller.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from relmap.assess.fallback import heuristic_assessment
from relmap.assess.prompts import PromptRenderer, build_prompt_context
from relmap.assess.retry import FailureKind, RetryPolicy
from relmap.assess.schema import build_response_schema, parse_assessment, validate_completeness
from relmap.types import AssessmentResult, Provenance, TierAssignment

if TYPE_CHECKING:
    from collections.abc import Callable

    from relmap.config import MappingOptions
    from relmap.llm.base import BaseClassifier
    from relmap.types import (
        FileCandidate,
        FileSummary,
        NormalizedRequirements,
        RelevanceTier,
        RetrievalResult,
    )

__all__ = ["Assessor", "assessment_scope"]

logger = logging.getLogger(__name__)


def assessment_scope(
    retrieval: RetrievalResult,
    summaries: list[FileSummary],
) -> tuple[dict[str, tuple[FileCandidate, ...]], list[FileSummary]]:
    """Restrict candidates to files that have a summary.

    Returns:
        The per-domain candidates to assess, and the summaries of the
        deduplicated candidate union (in summary order).
    """
    by_path = {s.path: s for s in summaries}
    scoped = {
        domain: tuple(c for c in files if c.path in by_path)
        for domain, files in retrieval.candidates.items()
    }

    dropped = retrieval.candidate_paths() - by_path.keys()
    if dropped:
        logger.warning(
            "%d candidates have no file summary and will not be assessed: %s",
            len(dropped),
            sorted(dropped)[:5],
        )

    wanted = {c.path for files in scoped.values() for c in files}
    return scoped, [s for s in summaries if s.path in wanted]


class Assessor:
    """Assigns a relevance tier to every retrieval candidate.

    All collaborators are injected, so tests can drive it with a fake
    classifier and a no-op ``sleep``.
    """

    def __init__(
        self,
        classifier: BaseClassifier,
        renderer: PromptRenderer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.classifier = classifier
        self.renderer = renderer or PromptRenderer()
        self._sleep = sleep

    def assess(
        self,
        summaries: list[FileSummary],
        requirements: NormalizedRequirements,
        retrieval: RetrievalResult,
        options: MappingOptions,
    ) -> AssessmentResult:
        """Classify all candidates, retrying and falling back as needed.

        Returns:
            Tiers for exactly the summarized candidates of each domain,
            tagged ``assessed``; or score-band tiers for every candidate,
            tagged ``heuristic-fallback``, when no attempt succeeded.

        Raises:
            PromptError: If the prompt templates are missing or broken.
        """
        scoped, candidate_summaries = assessment_scope(retrieval, summaries)
        total = sum(len(files) for files in scoped.values())
        logger.info("Phase 2: assessing %d candidates (%d files)", total, len(candidate_summaries))

        if total == 0:
            if retrieval.total_candidates:
                logger.warning("No candidate has a file summary; using embedding-score tiers")
                return heuristic_assessment(retrieval.candidates)
            return AssessmentResult(assignments={domain: () for domain in scoped})

        context = build_prompt_context(candidate_summaries, requirements, scoped)
        schema = build_response_schema(scoped)
        expected = {domain: {c.path for c in files} for domain, files in scoped.items()}

        policy = RetryPolicy(max_attempts=options.max_attempts)
        decision = policy.start()

        while decision.variant is not None:
            system_prompt, user_prompt = self.renderer.render(
                decision.variant, context, decision.failure
            )
            logger.debug(
                "Attempt %d/%d (%s prompt, %d chars)",
                decision.attempt,
                policy.max_attempts,
                decision.variant.value,
                len(user_prompt),
            )

            try:
                raw = self.classifier.classify(system_prompt, user_prompt, schema)
                parsed = parse_assessment(raw, scoped)
                validate_completeness(parsed, expected)
            except Exception as e:
                failure = FailureKind.from_error(e)
                logger.warning(
                    "Assessment attempt %d failed (%s, %s): %s",
                    decision.attempt,
                    failure.value,
                    type(e).__name__,
                    e,
                )
                decision = policy.after_failure(decision.attempt, failure)
                if not decision.exhausted:
                    self._sleep(options.retry_delay)
                continue

            logger.info("Phase 2 complete after %d attempt(s)", decision.attempt)
            return self._to_result(parsed, scoped, decision.attempt)

        logger.error(
            "All %d assessment attempts failed; using embedding-score tiers",
            policy.max_attempts,
        )
        return heuristic_assessment(retrieval.candidates, attempts=policy.max_attempts)

    @staticmethod
    def _to_result(
        parsed: dict[str, list[tuple[str, RelevanceTier]]],
        scoped: dict[str, tuple[FileCandidate, ...]],
        attempts: int,
    ) -> AssessmentResult:
        """Order validated tiers like the candidates they label."""
        assignments: dict[str, tuple[TierAssignment, ...]] = {}
        for domain, files in scoped.items():
            tiers = dict(parsed[domain])
            assignments[domain] = tuple(
                TierAssignment(path=c.path, tier=tiers[c.path]) for c in files
            )
        return AssessmentResult(
            assignments=assignments,
            provenance=Provenance.ASSESSED,
            attempts=attempts,
        )
