"""Tests for relmap.assess.retry — the escalating-prompt retry policy."""

from __future__ import annotations

from relmap.assess.retry import FailureKind, PromptVariant, RetryDecision, RetryPolicy
from relmap.exceptions import (
    IncompleteClassificationError,
    LlmError,
    MalformedClassificationError,
)


class TestFailureKind:
    def test_from_incomplete(self):
        assert FailureKind.from_error(IncompleteClassificationError("x")) is FailureKind.INCOMPLETE

    def test_from_malformed(self):
        assert FailureKind.from_error(MalformedClassificationError("x")) is FailureKind.MALFORMED

    def test_from_transport(self):
        assert FailureKind.from_error(LlmError("x")) is FailureKind.TRANSPORT


class TestRetryPolicy:
    def test_variants_escalate(self):
        policy = RetryPolicy(max_attempts=5)
        assert [policy.variant_for(n) for n in range(1, 6)] == [
            PromptVariant.FULL,
            PromptVariant.JSON_ONLY,
            PromptVariant.MINIMAL,
            PromptVariant.MINIMAL,
            PromptVariant.MINIMAL,
        ]

    def test_start(self):
        assert RetryPolicy().start() == RetryDecision(attempt=1, variant=PromptVariant.FULL)

    def test_after_first_failure(self):
        decision = RetryPolicy().after_failure(1, FailureKind.MALFORMED)
        assert decision == RetryDecision(
            attempt=2, variant=PromptVariant.JSON_ONLY, failure=FailureKind.MALFORMED
        )
        assert not decision.exhausted

    def test_full_sequence(self):
        policy = RetryPolicy(max_attempts=3)
        decision = policy.start()
        seen = [decision.variant]
        while not decision.exhausted:
            decision = policy.after_failure(decision.attempt, FailureKind.TRANSPORT)
            seen.append(decision.variant)
        assert seen == [PromptVariant.FULL, PromptVariant.JSON_ONLY, PromptVariant.MINIMAL, None]
        assert decision.attempt == 3

    def test_single_attempt_exhausts_immediately(self):
        decision = RetryPolicy(max_attempts=1).after_failure(1, FailureKind.INCOMPLETE)
        assert decision.exhausted
        assert decision.failure is FailureKind.INCOMPLETE
