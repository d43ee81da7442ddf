# dexpara/application/dto/match_dto.py
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from dexpara.domain.models import Candidate, MatchResult, SimilarityStats
from dexpara.domain.services.matching import DEFAULT_WEIGHTS
from dexpara.domain.types import RawRow


@dataclass(frozen=True)
class MatchJobRequest:
    """
    DTO for one DE x RASTREIO reconciliation job.

    - de_rows:   raw source rows ({url, slug, meta_title, meta_description, h1})
    - rast_rows: raw target rows, same shape
    - weights:   (slug, title, description, h1); normalized by the engine
    - min_score: similarity a candidate needs to be sent to the ranking model
                 and to be listed as a match in the report
    - use_ai:    whether to run the ranking refinement at all
    """

    de_rows: Sequence[RawRow]
    rast_rows: Sequence[RawRow]
    weights: Sequence[float] = DEFAULT_WEIGHTS
    min_score: float = 0.8
    use_ai: bool = True


@dataclass(frozen=True)
class ReportRow:
    """Summary line for one DE record (what the output sheet shows)."""

    de_url: str
    best: Candidate | None
    matches: tuple[Candidate, ...]

    @property
    def matched(self) -> bool:
        return bool(self.matches)


@dataclass(frozen=True)
class MatchReport:
    """Final job output handed to the rendering collaborator."""

    session_id: str
    min_score: float
    results: list[MatchResult]
    rows: list[ReportRow]
    stats: SimilarityStats
    ai_refined: bool
    details: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def build(
        session_id: str,
        results: list[MatchResult],
        min_score: float,
        stats: SimilarityStats,
        ai_refined: bool,
    ) -> MatchReport:
        rows = []
        for r in results:
            matches = tuple(c for c in r.candidates if c.effective_score >= min_score)
            rows.append(ReportRow(de_url=r.de.url, best=r.best(), matches=matches))
        return MatchReport(
            session_id=session_id,
            min_score=min_score,
            results=results,
            rows=rows,
            stats=stats,
            ai_refined=ai_refined,
            details={
                "totalProcessed": len(results),
                "matched": sum(1 for row in rows if row.matched),
            },
        )
