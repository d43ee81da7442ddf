# dexpara/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Record:
    """
    Immutable URL record shared by both sides of the reconciliation.

    - url:              full URL (or path) of the page
    - slug:             path-segment identifier of the URL
    - meta_title:       <title> / meta title text
    - meta_description: meta description text
    - h1:               main heading text

    DE rows and RASTREIO rows have the same shape; only their role differs.
    """

    url: str = ""
    slug: str = ""
    meta_title: str = ""
    meta_description: str = ""
    h1: str = ""


@dataclass(frozen=True)
class FieldScores:
    """Per-field similarities kept for explainability (not clamped)."""

    slug_score: float
    title_score: float
    desc_score: float
    h1_score: float


@dataclass(frozen=True)
class Candidate:
    """
    A RASTREIO record scored against one DE record.

    Refinement never mutates a candidate; it returns a copy carrying the
    AI fields (gemini_score, reason, final_score).
    """

    record: Record
    score: float
    details: FieldScores
    gemini_score: float | None = None
    reason: str | None = None
    final_score: float | None = None

    @property
    def url(self) -> str:
        return self.record.url

    @property
    def effective_score(self) -> float:
        """final_score when refined, raw score otherwise."""
        return self.final_score if self.final_score is not None else self.score

    @property
    def is_refined(self) -> bool:
        return self.gemini_score is not None


@dataclass(frozen=True)
class MatchResult:
    """One DE record with every RASTREIO candidate, best first."""

    de: Record
    candidates: tuple[Candidate, ...]

    def best(self) -> Candidate | None:
        return self.candidates[0] if self.candidates else None


@dataclass(frozen=True)
class AiRanking:
    """One decoded entry of the ranking model answer."""

    url: str
    ai_score: float
    reason: str


@dataclass(frozen=True)
class SimilarityStats:
    total_comparisons: int
    average_score: float
    max_score: float
    min_score: float
    scores_above_80: int
    scores_above_90: int


class ProgressStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not ProgressStatus.PROCESSING


class PipelineStage(str, Enum):
    """Named pipeline stages, in execution order."""

    PARSING = "parsing"
    NORMALIZING = "normalizing"
    SIMILARITIES = "similarities"
    GEMINI = "gemini"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def milestone(self) -> int:
        return STAGE_MILESTONES[self]


# Fixed milestones; the gemini stage is scaled between GEMINI and GENERATING.
STAGE_MILESTONES: Mapping[PipelineStage, int] = {
    PipelineStage.PARSING: 10,
    PipelineStage.NORMALIZING: 20,
    PipelineStage.SIMILARITIES: 40,
    PipelineStage.GEMINI: 50,
    PipelineStage.GENERATING: 90,
    PipelineStage.COMPLETED: 100,
    PipelineStage.ERROR: 0,
}


def gemini_stage_percentage(refine_percent: float) -> float:
    """Map refinement progress (0..100) onto the 50..90 band."""
    return STAGE_MILESTONES[PipelineStage.GEMINI] + refine_percent * 0.4


@dataclass(frozen=True)
class ProgressRecord:
    """Live progress snapshot for one session; overwritten on every stage."""

    session_id: str
    step: str
    percentage: int
    message: str
    status: ProgressStatus
    timestamp: str
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "step": self.step,
            "percentage": self.percentage,
            "message": self.message,
            "details": dict(self.details),
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
