"""Embedding retrieval phase: select candidate files per requirement domain.

Every category and every file is embedded once. A file's score for a
domain is its best cosine similarity against any of that domain's
categories; the top-scoring files above an adaptive threshold become the
domain's candidates.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from relmap.exceptions import EmbeddingError, RetrievalError
from relmap.similarity import cosine_similarity
from relmap.types import FileCandidate, RetrievalResult

if TYPE_CHECKING:
    from relmap.config import MappingOptions
    from relmap.embed.base import BaseEmbedder
    from relmap.types import NormalizedRequirements, RequirementCategory

__all__ = [
    "EmbeddingRetriever",
    "build_category_query",
    "build_file_text",
    "domain_scores",
    "filter_and_sort",
    "select_candidates",
    "truncate_to_token_limit",
]

logger = logging.getLogger(__name__)

# Rough token estimate used to bound embedding request size.
CHARS_PER_TOKEN = 4

# Only the first few requirement statements go into a category query.
_QUERY_REQUIREMENTS = 5

_TRUNCATION_MARKER = "\n\n// ... (truncated)"


def truncate_to_token_limit(content: str, max_tokens: int) -> str:
    """Cut ``content`` to roughly ``max_tokens`` tokens (4 characters each)."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + _TRUNCATION_MARKER


def build_category_query(category: RequirementCategory) -> str:
    """Build the single query string embedded for a category."""
    requirements = ". ".join(category.requirements[:_QUERY_REQUIREMENTS])
    keywords = ", ".join(category.keywords)
    return f"{category.title}. Keywords: {keywords}. Requirements: {requirements}"


def build_file_text(path: str, content: str, max_tokens: int) -> str:
    """Build the text embedded for a file: its path header plus truncated content."""
    return f"File: {path}\n\n{truncate_to_token_limit(content, max_tokens)}"


def domain_scores(
    file_vectors: dict[str, list[float]],
    category_vectors: list[list[float]],
) -> dict[str, float]:
    """Score each file against a domain as its maximum category similarity.

    The maximum (not the mean) is deliberate: a file that strongly matches
    a single category is relevant to the whole domain.

    Returns an empty mapping when the domain has no categories.
    """
    if not category_vectors:
        return {}
    return {
        path: max(cosine_similarity(vec, cat_vec) for cat_vec in category_vectors)
        for path, vec in file_vectors.items()
    }


def filter_and_sort(scores: dict[str, float], threshold: float, top_k: int) -> list[FileCandidate]:
    """Keep files scoring ``>= threshold``, best first, at most ``top_k``.

    Ties are broken by path so selection is deterministic.
    """
    kept = [(path, score) for path, score in scores.items() if score >= threshold]
    kept.sort(key=lambda item: (-item[1], item[0]))
    return [FileCandidate(path=path, embedding_score=score) for path, score in kept[:top_k]]


def select_candidates(
    scores: dict[str, float],
    options: MappingOptions,
    domain: str = "",
) -> tuple[list[FileCandidate], float]:
    """Select candidates with adaptive thresholding.

    Starts at ``embedding_threshold``. While fewer than
    ``min_candidates_for_phase2`` files qualify, retries with each value of
    ``embedding_retry_thresholds`` in order and stops at the first one that
    reaches the minimum, or after the last one.

    Returns:
        The selected candidates and the threshold that produced them.
    """
    threshold = options.embedding_threshold
    candidates = filter_and_sort(scores, threshold, options.embedding_top_k)

    if len(candidates) < options.min_candidates_for_phase2:
        for retry_threshold in options.embedding_retry_thresholds:
            logger.warning(
                "%s: only %d candidates at threshold %.2f, retrying with %.2f",
                domain or "domain",
                len(candidates),
                threshold,
                retry_threshold,
            )
            threshold = retry_threshold
            candidates = filter_and_sort(scores, threshold, options.embedding_top_k)
            if len(candidates) >= options.min_candidates_for_phase2:
                break

    return candidates, threshold


class EmbeddingRetriever:
    """Runs the embedding retrieval phase against an injected embedder.

    Usage::

        retriever = EmbeddingRetriever(embedder)
        result = retriever.retrieve(files_map, requirements, options)
        result.candidates["functional_requirements"]
    """

    def __init__(self, embedder: BaseEmbedder) -> None:
        self.embedder = embedder

    def retrieve(
        self,
        files_map: dict[str, str],
        requirements: NormalizedRequirements,
        options: MappingOptions,
    ) -> RetrievalResult:
        """Embed categories and files, then select candidates per domain.

        Raises:
            RetrievalError: If any category or file cannot be embedded, or
                vectors cannot be compared.
        """
        logger.info(
            "Phase 1: embedding %d files against %d domains",
            len(files_map),
            len(requirements),
        )

        category_vectors = self._embed_categories(requirements)
        file_vectors = self._embed_files(files_map, options)

        candidates: dict[str, tuple[FileCandidate, ...]] = {}
        thresholds: dict[str, float] = {}
        for domain, vectors in category_vectors.items():
            try:
                scores = domain_scores(file_vectors, vectors)
            except ValueError as e:
                raise RetrievalError(
                    f"Cannot compare embeddings for {domain}: {e}", domain=domain
                ) from e

            selected, threshold = select_candidates(scores, options, domain=domain)
            candidates[domain] = tuple(selected)
            thresholds[domain] = threshold
            logger.info(
                "%s: %d candidates (threshold %.2f)", domain, len(selected), threshold
            )

        return RetrievalResult(candidates=candidates, thresholds=thresholds)

    def _embed_categories(
        self, requirements: NormalizedRequirements
    ) -> dict[str, list[list[float]]]:
        """Embed one query per category, sequentially."""
        vectors: dict[str, list[list[float]]] = {}
        for domain, categories in requirements.items():
            vectors[domain] = []
            for category in categories:
                try:
                    vectors[domain].append(self.embedder.embed(build_category_query(category)))
                except EmbeddingError as e:
                    logger.error("Failed to embed category %r (%s): %s", category.title, domain, e)
                    raise RetrievalError(
                        f"Failed to embed category {category.title!r} in {domain}: {e}",
                        domain=domain,
                        subject=category.title,
                    ) from e
        return vectors

    def _embed_files(
        self, files_map: dict[str, str], options: MappingOptions
    ) -> dict[str, list[float]]:
        """Embed every file in batches of ``parallel_batch_size`` concurrent calls.

        Each batch is joined before the next is submitted, so no more than
        ``parallel_batch_size`` embedding calls are ever in flight.
        """
        files = list(files_map.items())
        batch_size = options.parallel_batch_size
        vectors: dict[str, list[float]] = {}

        with ThreadPoolExecutor(max_workers=batch_size) as pool:
            for start in range(0, len(files), batch_size):
                batch = files[start : start + batch_size]
                futures = [
                    (
                        path,
                        pool.submit(
                            self.embedder.embed,
                            build_file_text(path, content, options.max_tokens_per_file),
                        ),
                    )
                    for path, content in batch
                ]
                for path, future in futures:
                    try:
                        vectors[path] = future.result()
                    except EmbeddingError as e:
                        logger.error("Failed to embed file %s: %s", path, e)
                        raise RetrievalError(
                            f"Failed to embed file {path}: {e}", subject=path
                        ) from e

                logger.debug("Embedded %d/%d files", len(vectors), len(files))

        return vectors
