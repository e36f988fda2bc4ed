"""Jinja2 prompt rendering for the assessment call.

Loads templates from an optional user-override directory and the built-in
``relmap/templates/`` directory, in that order, and renders the system and
user prompts for each retry variant.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import jinja2

from relmap.assess.retry import PromptVariant
from relmap.exceptions import PromptError

if TYPE_CHECKING:
    from relmap.assess.retry import FailureKind
    from relmap.types import FileCandidate, FileSummary, NormalizedRequirements

__all__ = ["PromptContext", "PromptRenderer", "build_prompt_context", "domain_label"]

logger = logging.getLogger(__name__)

SYSTEM_TEMPLATE = "assessment_system.md.j2"
USER_TEMPLATE = "assessment_user.md.j2"
RETRY_USER_TEMPLATE = "assessment_retry_user.md.j2"


def domain_label(domain: str) -> str:
    """``"non_functional_requirements"`` → ``"NON FUNCTIONAL REQUIREMENTS"``."""
    return domain.replace("_", " ").upper()


@dataclass(frozen=True)
class PromptContext:
    """Flattened data made available to the assessment templates."""

    domains: list[str] = field(default_factory=list)
    requirements: list[dict[str, object]] = field(default_factory=list)
    files: list[dict[str, object]] = field(default_factory=list)
    scores: list[dict[str, object]] = field(default_factory=list)


def build_prompt_context(
    summaries: list[FileSummary],
    requirements: NormalizedRequirements,
    candidates: dict[str, tuple[FileCandidate, ...]],
) -> PromptContext:
    """Collect requirements, file summaries and advisory scores for rendering."""
    return PromptContext(
        domains=list(candidates),
        requirements=[
            {
                "label": domain_label(domain),
                "categories": [
                    {
                        "title": c.title,
                        "keywords": list(c.keywords),
                        "requirements": list(c.requirements),
                    }
                    for c in categories
                ],
            }
            for domain, categories in requirements.items()
        ],
        files=[
            {
                "path": s.path,
                "type": s.type.value,
                "size": s.size,
                "head": s.head,
                "imports": list(s.imports),
                "body_sample": s.body_sample,
            }
            for s in summaries
        ],
        scores=[
            {
                "domain": domain,
                "label": domain_label(domain),
                "files": [{"path": c.path, "score": c.embedding_score} for c in files],
            }
            for domain, files in candidates.items()
        ],
    )


class PromptRenderer:
    """Renders assessment prompts from Jinja2 templates.

    Template search order:
      1. ``templates_dir`` (user overrides, optional)
      2. ``relmap/templates/`` (built-in, always present)
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        from importlib.resources import files

        search_paths: list[str] = []
        if templates_dir is not None:
            if templates_dir.is_dir():
                search_paths.append(str(templates_dir))
                logger.info("Prompt template overrides enabled: %s", templates_dir)
            else:
                logger.warning("Prompt template directory not found: %s", templates_dir)

        builtin_dir = Path(str(files("relmap") / "templates"))
        if not builtin_dir.is_dir():
            logger.debug("Expected template dir at: %s", builtin_dir)
            raise PromptError(
                "Built-in template directory not found — installation may be corrupted"
            )
        search_paths.append(str(builtin_dir))

        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(search_paths),
            autoescape=False,
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _render(self, template_name: str, **variables: object) -> str:
        try:
            template = self._env.get_template(template_name)
        except jinja2.TemplateNotFound as e:
            raise PromptError(f"Template not found: {template_name}") from e

        try:
            return template.render(**variables)
        except jinja2.TemplateError as e:
            raise PromptError(f"Failed to render template {template_name}: {e}") from e

    def render(
        self,
        variant: PromptVariant,
        context: PromptContext,
        failure: FailureKind | None = None,
    ) -> tuple[str, str]:
        """Render ``(system_prompt, user_prompt)`` for an attempt.

        Args:
            variant: Prompt flavour chosen by the retry policy.
            context: Data to render.
            failure: Why the previous attempt was rejected, if any.

        Raises:
            PromptError: If a template is missing or fails to render.
        """
        variables = asdict(context)
        variables["variant"] = variant.value
        variables["failure"] = failure.value if failure is not None else ""
        variables["total_files"] = len(context.files)

        system_prompt = self._render(SYSTEM_TEMPLATE, **variables)
        user_template = USER_TEMPLATE if variant is PromptVariant.FULL else RETRY_USER_TEMPLATE
        user_prompt = self._render(user_template, **variables)
        return system_prompt, user_prompt
