"""Pipeline data contracts for relmap.

Frozen dataclasses that flow between the mapping phases:
  files + requirements → RetrievalResult → AssessmentResult → RelevanceMappingResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

__all__ = [
    "DEFAULT_DOMAINS",
    "TIER_WEIGHTS",
    "AssessmentResult",
    "FileCandidate",
    "FileSummary",
    "FileType",
    "HybridScoredFile",
    "MappingMetadata",
    "NormalizedRequirements",
    "Provenance",
    "RelevanceMappingResult",
    "RelevanceTier",
    "RequirementCategory",
    "RetrievalResult",
    "TierAssignment",
]

DEFAULT_DOMAINS: tuple[str, ...] = (
    "best_practices",
    "functional_requirements",
    "non_functional_requirements",
)


class FileType(str, Enum):
    """Coarse file role assigned by static analysis."""

    SOURCE = "source"
    TEST = "test"
    CONFIG = "config"
    INFRA = "infra"
    SCHEMA = "schema"


class RelevanceTier(str, Enum):
    """Four-level relevance label assigned during assessment."""

    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    SUPPORTING = "SUPPORTING"
    IRRELEVANT = "IRRELEVANT"

    @property
    def weight(self) -> float:
        """Fixed fusion weight for this tier."""
        return TIER_WEIGHTS[self]


TIER_WEIGHTS: dict[RelevanceTier, float] = {
    RelevanceTier.PRIMARY: 1.0,
    RelevanceTier.SECONDARY: 0.75,
    RelevanceTier.SUPPORTING: 0.5,
    RelevanceTier.IRRELEVANT: 0.0,
}


class Provenance(str, Enum):
    """Where a tier came from: the classifier, or the embedding-score heuristic."""

    ASSESSED = "assessed"
    HEURISTIC = "heuristic-fallback"


@dataclass(frozen=True)
class RequirementCategory:
    """A titled group of requirement statements within one domain."""

    title: str
    requirements: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


# domain name → categories, e.g. {"functional_requirements": (cat1, cat2)}
NormalizedRequirements = dict[str, tuple[RequirementCategory, ...]]


@dataclass(frozen=True)
class FileSummary:
    """Static-analysis summary of one file, used as classifier context."""

    path: str
    size: int = 0
    type: FileType = FileType.SOURCE
    head: str = ""
    imports: tuple[str, ...] = ()
    body_sample: str = ""


@dataclass(frozen=True)
class FileCandidate:
    """A file retrieved for a domain, with its best category similarity."""

    path: str
    embedding_score: float


@dataclass(frozen=True)
class TierAssignment:
    """A tier assigned to one candidate path."""

    path: str
    tier: RelevanceTier
    provenance: Provenance = Provenance.ASSESSED


@dataclass(frozen=True)
class RetrievalResult:
    """Output of the embedding retrieval phase.

    ``thresholds`` records, per domain, the similarity cutoff that produced
    the candidate list (the default or one of the adaptive retry values).
    """

    candidates: dict[str, tuple[FileCandidate, ...]] = field(default_factory=dict)
    thresholds: dict[str, float] = field(default_factory=dict)

    @property
    def total_candidates(self) -> int:
        return sum(len(files) for files in self.candidates.values())

    def candidate_paths(self) -> set[str]:
        """Union of candidate paths across all domains."""
        return {c.path for files in self.candidates.values() for c in files}


@dataclass(frozen=True)
class AssessmentResult:
    """Output of the assessment phase: one tier per candidate per domain."""

    assignments: dict[str, tuple[TierAssignment, ...]] = field(default_factory=dict)
    provenance: Provenance = Provenance.ASSESSED
    attempts: int = 0

    @property
    def total_assessed(self) -> int:
        return sum(len(items) for items in self.assignments.values())


@dataclass(frozen=True)
class HybridScoredFile:
    """Final per-domain artifact: both signals fused into one score."""

    path: str
    embedding_score: float
    llm_assessment: RelevanceTier
    hybrid_score: float
    included: bool
    provenance: Provenance = Provenance.ASSESSED

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "embeddingScore": self.embedding_score,
            "llmAssessment": self.llm_assessment.value,
            "hybridScore": self.hybrid_score,
            "included": self.included,
            "provenance": self.provenance.value,
        }


@dataclass(frozen=True)
class MappingMetadata:
    """Counts and timings collected by the orchestrator."""

    phase1_total_candidates: int
    phase2_assessed_files: int
    final_included_files: int
    processing_time_ms: int
    assessment_source: Provenance = Provenance.ASSESSED
    assessment_attempts: int = 0
    thresholds: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "phase1_total_candidates": self.phase1_total_candidates,
            "phase2_assessed_files": self.phase2_assessed_files,
            "final_included_files": self.final_included_files,
            "processing_time_ms": self.processing_time_ms,
            "assessment_source": self.assessment_source.value,
            "assessment_attempts": self.assessment_attempts,
            "thresholds": dict(self.thresholds),
        }


@dataclass(frozen=True)
class RelevanceMappingResult:
    """Relevance mapping for one pipeline run, handed to downstream evaluators."""

    domains: dict[str, tuple[HybridScoredFile, ...]]
    metadata: MappingMetadata

    def files(self, domain: str) -> tuple[HybridScoredFile, ...]:
        """Scored files for a domain, best first. Unknown domains yield ``()``."""
        return self.domains.get(domain, ())

    def relevant_files(self, domain: str, files_map: dict[str, str]) -> dict[str, str] | None:
        """Return ``{path: content}`` for included files of ``domain``.

        Files missing from ``files_map`` (or with empty content) are skipped.
        Returns ``None`` when nothing qualifies, so callers can skip the
        domain entirely.
        """
        relevant = {
            f.path: files_map[f.path]
            for f in self.files(domain)
            if f.included and files_map.get(f.path)
        }
        return relevant or None

    @property
    def degraded(self) -> bool:
        """True when tiers came from the embedding heuristic instead of the classifier."""
        return self.metadata.assessment_source is Provenance.HEURISTIC

    def to_dict(self) -> dict[str, object]:
        """Serialize to the JSON shape consumed downstream."""
        data: dict[str, object] = {
            domain: [f.to_dict() for f in files] for domain, files in self.domains.items()
        }
        data["metadata"] = self.metadata.to_dict()
        return data
