"""Tests for relmap.assess.prompts — Jinja2 prompt rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from relmap.assess.prompts import PromptRenderer, build_prompt_context, domain_label
from relmap.assess.retry import FailureKind, PromptVariant
from relmap.exceptions import PromptError
from relmap.types import FileCandidate

if TYPE_CHECKING:
    from pathlib import Path

_CONTROLLER = "src/deliveries/CreateDeliveryController.ts"


@pytest.fixture
def context(summaries, requirements):
    candidates = {
        "functional_requirements": (FileCandidate(_CONTROLLER, 0.46),),
        "non_functional_requirements": (FileCandidate("src/cache/redis.ts", 0.71),),
    }
    return build_prompt_context(summaries[:2], requirements, candidates)


class TestDomainLabel:
    def test_label(self):
        assert domain_label("non_functional_requirements") == "NON FUNCTIONAL REQUIREMENTS"


class TestBuildPromptContext:
    def test_fields(self, context):
        assert context.domains == ["functional_requirements", "non_functional_requirements"]
        assert [f["path"] for f in context.files] == [_CONTROLLER, "src/cache/redis.ts"]
        assert context.files[1]["type"] == "infra"
        assert context.requirements[0]["label"] == "FUNCTIONAL REQUIREMENTS"
        assert context.requirements[0]["categories"][0]["title"] == "Gestão de Entregas"
        assert context.scores[0]["files"] == [{"path": _CONTROLLER, "score": 0.46}]
        assert context.scores[1]["domain"] == "non_functional_requirements"


class TestPromptRenderer:
    def test_full_prompt(self, context):
        system, user = PromptRenderer().render(PromptVariant.FULL, context)

        assert '"functional_requirements": [' in system
        assert '"non_functional_requirements": [' in system
        assert "PRIMARY (weight: 1.0)" in system
        assert "CRITICAL REMINDER" not in system

        assert "TASK: Assess 2 candidate files" in user
        assert "### Gestão de Entregas" in user
        assert "Keywords: delivery, shipment" in user
        assert "  - Create deliveries" in user
        assert f"### {_CONTROLLER}" in user
        assert "Type: infra" in user
        assert "ioredis" in user
        assert f"  - {_CONTROLLER}: 0.460" in user
        assert '### FUNCTIONAL REQUIREMENTS (JSON key "functional_requirements")' in user

    def test_json_only_after_malformed(self, context):
        system, user = PromptRenderer().render(
            PromptVariant.JSON_ONLY, context, FailureKind.MALFORMED
        )
        assert "CRITICAL REMINDER (Attempt 2)" in system
        assert "was not valid JSON" in system
        assert user.startswith("ATTEMPT 2 - Return ONLY JSON")
        assert _CONTROLLER in user
        assert "REMEMBER: NO markdown" in user
        assert '(JSON key "functional_requirements"):' in user

    def test_json_only_after_incomplete(self, context):
        system, _user = PromptRenderer().render(
            PromptVariant.JSON_ONLY, context, FailureKind.INCOMPLETE
        )
        assert "did not list exactly the candidate files" in system

    def test_minimal(self, context):
        system, user = PromptRenderer().render(
            PromptVariant.MINIMAL, context, FailureKind.TRANSPORT
        )
        assert "## FINAL ATTEMPT" in system
        assert user.startswith("FINAL ATTEMPT - Return valid JSON for these 2 files")
        assert 'NON FUNCTIONAL REQUIREMENTS (JSON key "non_functional_requirements"):' in user

    def test_override_dir(self, context, tmp_path: Path):
        (tmp_path / "assessment_user.md.j2").write_text(
            "Custom: {{ total_files }} files\n", encoding="utf-8"
        )
        system, user = PromptRenderer(tmp_path).render(PromptVariant.FULL, context)
        assert user == "Custom: 2 files\n"
        assert "RELEVANCE LEVELS" in system

    def test_missing_override_dir_falls_back(self, context, tmp_path: Path):
        _system, user = PromptRenderer(tmp_path / "nope").render(PromptVariant.FULL, context)
        assert user.startswith("TASK:")

    def test_broken_override_raises(self, context, tmp_path: Path):
        (tmp_path / "assessment_system.md.j2").write_text("{{ not_defined }}", encoding="utf-8")
        with pytest.raises(PromptError, match="Failed to render"):
            PromptRenderer(tmp_path).render(PromptVariant.FULL, context)
