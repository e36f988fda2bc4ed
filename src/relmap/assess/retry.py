"""Retry policy for classifier calls.

A small state machine, independent of any transport: the state is the
attempt number, a failure moves to the next (more insistent) prompt
variant, and running out of attempts ends in the heuristic fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from relmap.exceptions import ClassificationError, IncompleteClassificationError

__all__ = ["FailureKind", "PromptVariant", "RetryDecision", "RetryPolicy"]


class PromptVariant(str, Enum):
    """Prompt flavour used for an attempt."""

    FULL = "full"
    JSON_ONLY = "json_only"
    MINIMAL = "minimal"


class FailureKind(str, Enum):
    """Why an attempt was rejected."""

    TRANSPORT = "transport"
    MALFORMED = "malformed"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_error(cls, error: Exception) -> FailureKind:
        if isinstance(error, IncompleteClassificationError):
            return cls.INCOMPLETE
        if isinstance(error, ClassificationError):
            return cls.MALFORMED
        return cls.TRANSPORT


@dataclass(frozen=True)
class RetryDecision:
    """What to do next: another attempt with ``variant``, or fall back."""

    attempt: int
    variant: PromptVariant | None = None
    failure: FailureKind | None = None

    @property
    def exhausted(self) -> bool:
        return self.variant is None


@dataclass(frozen=True)
class RetryPolicy:
    """Escalating-prompt retry policy.

    Attempt 1 uses the full prompt, attempt 2 adds a JSON-only directive,
    and every later attempt uses the terse last-resort prompt.
    """

    max_attempts: int = 3

    def variant_for(self, attempt: int) -> PromptVariant:
        if attempt <= 1:
            return PromptVariant.FULL
        if attempt == 2:
            return PromptVariant.JSON_ONLY
        return PromptVariant.MINIMAL

    def start(self) -> RetryDecision:
        return RetryDecision(attempt=1, variant=self.variant_for(1))

    def after_failure(self, attempt: int, failure: FailureKind) -> RetryDecision:
        """Transition after ``attempt`` failed with ``failure``.

        Returns an exhausted decision (``variant is None``) once
        ``max_attempts`` have been spent.
        """
        if attempt >= self.max_attempts:
            return RetryDecision(attempt=attempt, variant=None, failure=failure)
        nxt = attempt + 1
        return RetryDecision(attempt=nxt, variant=self.variant_for(nxt), failure=failure)
