"""Assessment phase — classifier reranking with retries and heuristic fallback."""

from relmap.assess.assessor import Assessor, assessment_scope
from relmap.assess.fallback import heuristic_assessment, heuristic_tier
from relmap.assess.prompts import PromptRenderer
from relmap.assess.retry import FailureKind, PromptVariant, RetryDecision, RetryPolicy

__all__ = [
    "Assessor",
    "FailureKind",
    "PromptRenderer",
    "PromptVariant",
    "RetryDecision",
    "RetryPolicy",
    "assessment_scope",
    "heuristic_assessment",
    "heuristic_tier",
]
