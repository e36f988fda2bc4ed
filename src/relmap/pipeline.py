"""Pipeline orchestrator for relmap.

Composes embedding retrieval → assessment → fusion via constructor
injection and exposes the single entry point, :meth:`RelevanceMapper.execute`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from relmap.assess.assessor import Assessor
from relmap.config import MappingOptions
from relmap.exceptions import PipelineError
from relmap.fusion import fuse
from relmap.registry import default_registry
from relmap.retrieval import EmbeddingRetriever
from relmap.types import MappingMetadata, RelevanceMappingResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from relmap.assess.prompts import PromptRenderer
    from relmap.config import RelmapConfig
    from relmap.embed.base import BaseEmbedder
    from relmap.llm.base import BaseClassifier
    from relmap.registry import ProviderRegistry
    from relmap.types import FileSummary, NormalizedRequirements

__all__ = ["RelevanceMapper"]

logger = logging.getLogger(__name__)


class RelevanceMapper:
    """Maps files to requirement domains with hybrid embedding + classifier scoring.

    All dependencies are injected via the constructor, making the mapper
    fully testable with fake providers.

    Usage::

        mapper = RelevanceMapper(embedder=embedder, classifier=classifier)
        result = mapper.execute(files_map, summaries, requirements)
        result.files("functional_requirements")
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        classifier: BaseClassifier,
        options: MappingOptions | None = None,
        renderer: PromptRenderer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.retriever = EmbeddingRetriever(embedder)
        self.assessor = Assessor(classifier, renderer=renderer, sleep=sleep)
        self.options = options or MappingOptions()

    @classmethod
    def from_config(
        cls,
        config: RelmapConfig,
        registry: ProviderRegistry = default_registry,
        templates_dir: Path | None = None,
    ) -> RelevanceMapper:
        """Build a mapper whose providers are chosen by ``config``.

        Raises:
            PluginError: If a configured provider is not registered.
            EmbeddingError: If the embedding provider cannot start.
        """
        from relmap.assess.prompts import PromptRenderer

        embedder = registry.create("embedding", config)
        classifier = registry.create("llm", config)
        return cls(
            embedder=embedder,
            classifier=classifier,
            options=config.mapping,
            renderer=PromptRenderer(templates_dir),
        )

    def _resolve_options(
        self, options: MappingOptions | Mapping[str, Any] | None
    ) -> MappingOptions:
        if options is None:
            return self.options
        if isinstance(options, MappingOptions):
            return options
        return self.options.with_overrides(**dict(options))

    def execute(
        self,
        files_map: dict[str, str],
        summaries: list[FileSummary],
        requirements: NormalizedRequirements,
        options: MappingOptions | Mapping[str, Any] | None = None,
    ) -> RelevanceMappingResult:
        """Run all three phases and collect metadata.

        Args:
            files_map: Filtered ``path → content`` map.
            summaries: Static summaries of the filtered files.
            requirements: Categories grouped by domain.
            options: Full options, or a mapping of overrides applied on top
                of the mapper's defaults.

        Returns:
            Included files per domain, best first, plus run metadata.

        Raises:
            ConfigError: If ``options`` contains unknown or invalid values.
            PipelineError: If retrieval fails; there is no similarity signal
                to rerank without it.
        """
        opts = self._resolve_options(options)
        start = time.perf_counter()
        logger.info(
            "Starting relevance mapping: %d files, %d domains", len(files_map), len(requirements)
        )

        try:
            retrieval = self.retriever.retrieve(files_map, requirements, opts)
            assessment = self.assessor.assess(summaries, requirements, retrieval, opts)
            domains = fuse(retrieval, assessment, opts.hybrid_score_threshold)
        except PipelineError:
            raise
        except Exception as e:
            logger.error("Relevance mapping failed: %s", e)
            raise PipelineError(f"Relevance mapping failed: {e}") from e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        metadata = MappingMetadata(
            phase1_total_candidates=retrieval.total_candidates,
            phase2_assessed_files=assessment.total_assessed,
            final_included_files=sum(len(files) for files in domains.values()),
            processing_time_ms=elapsed_ms,
            assessment_source=assessment.provenance,
            assessment_attempts=assessment.attempts,
            thresholds=dict(retrieval.thresholds),
        )
        logger.info(
            "Relevance mapping completed in %dms: %d candidates, %d included (%s)",
            elapsed_ms,
            metadata.phase1_total_candidates,
            metadata.final_included_files,
            metadata.assessment_source.value,
        )
        return RelevanceMappingResult(domains=domains, metadata=metadata)
