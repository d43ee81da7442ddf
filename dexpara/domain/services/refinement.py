"""Pure domain functions for merging AI rankings into similarity results.

Why: Selection and merge rules are deterministic and must hold exactly
(final = (score + ai) / 2), so they are kept apart from the I/O-bound
refiner loop and tested without any ranking backend.

Functions:
- select_top_candidates: candidates eligible for AI review
- fallback_rankings: AI entries mirroring each candidate's own score
- merge_rankings: annotate candidates and re-sort by effective score
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace

from dexpara.domain.models import AiRanking, Candidate, MatchResult
from dexpara.domain.services.matching import sort_by_effective_score

NOT_ANALYZED_REASON = "Not analyzed by ranking model"


def select_top_candidates(
    result: MatchResult, min_score: float, top_n: int = 3
) -> list[Candidate]:
    """Up to top_n candidates with score >= min_score, best raw score first."""
    qualifying = [c for c in result.candidates if c.score >= min_score]
    qualifying.sort(key=lambda c: c.score, reverse=True)
    return qualifying[:top_n]


def fallback_rankings(candidates: Iterable[Candidate], reason: str) -> list[AiRanking]:
    """Entries that leave each candidate's score as its own AI score."""
    return [AiRanking(url=c.url, ai_score=c.score, reason=reason) for c in candidates]


def merge_rankings(
    result: MatchResult, top: Sequence[Candidate], rankings: Sequence[AiRanking]
) -> MatchResult:
    """Attach AI scores to the candidates reviewed by the model.

    Every top candidate gets an AI entry: the model's one when its URL was
    answered, its own score otherwise. Entries for URLs outside ``top`` are
    ignored. Annotated candidates get final_score = (score + ai) / 2; the
    rest are returned untouched. Candidates are re-sorted by effective score.
    """
    answered: dict[str, AiRanking] = {}
    for ranking in rankings:
        answered.setdefault(ranking.url, ranking)

    by_url: dict[str, AiRanking] = {}
    for cand in top:
        if cand.url in by_url:
            continue
        by_url[cand.url] = answered.get(cand.url) or AiRanking(
            url=cand.url, ai_score=cand.score, reason=NOT_ANALYZED_REASON
        )

    merged = []
    for cand in result.candidates:
        ranking = by_url.get(cand.url)
        if ranking is None:
            merged.append(cand)
            continue
        merged.append(
            replace(
                cand,
                gemini_score=ranking.ai_score,
                reason=ranking.reason,
                final_score=(cand.score + ranking.ai_score) / 2,
            )
        )
    return replace(result, candidates=sort_by_effective_score(merged))
