# dexpara/domain/services/matching.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

import math
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from functools import partial

from dexpara.domain.errors import ValidationError
from dexpara.domain.models import Candidate, MatchResult, Record, SimilarityStats
from dexpara.domain.similarity import weighted_score
from dexpara.domain.types import WeightVector

DEFAULT_WEIGHTS: WeightVector = (0.4, 0.25, 0.2, 0.15)


def normalize_weights(weights: Sequence[float]) -> WeightVector:
    """Scale (slug, title, description, h1) weights so they sum to 1.

    Raises:
        ValidationError: wrong arity, negative/non-finite entries or zero sum
    """
    if len(weights) != 4:
        raise ValidationError(f"expected 4 weights, got {len(weights)}")
    values = [float(w) for w in weights]
    if any(not math.isfinite(w) or w < 0 for w in values):
        raise ValidationError("weights must be finite and non-negative")
    total = sum(values)
    if total <= 0:
        raise ValidationError("at least one weight must be positive")
    slug, title, desc, h1 = (w / total for w in values)
    return (slug, title, desc, h1)


def sort_by_effective_score(candidates: Sequence[Candidate]) -> tuple[Candidate, ...]:
    """Stable descending sort; ties keep their input order."""
    return tuple(sorted(candidates, key=lambda c: c.effective_score, reverse=True))


def score_record(de: Record, rast_records: Sequence[Record], weights: WeightVector) -> MatchResult:
    candidates = [weighted_score(de, rast, weights) for rast in rast_records]
    return MatchResult(de=de, candidates=sort_by_effective_score(candidates))


def match(
    de_records: Sequence[Record],
    rast_records: Sequence[Record],
    weights: Sequence[float] = DEFAULT_WEIGHTS,
    max_workers: int = 1,
) -> list[MatchResult]:
    """Score every DE record against every RASTREIO record.

    Args:
        de_records: Normalized source records
        rast_records: Normalized target records
        weights: Raw weights, normalized once here
        max_workers: >1 spreads DE rows over a process pool

    Returns:
        One MatchResult per DE record, in DE input order, each holding all
        RASTREIO candidates sorted by score (stable).

    Note:
        O(|DE| * |RAST| * L) where L is the quadratic edit-distance cost.
    """
    normalized = normalize_weights(weights)
    scorer = partial(score_record, rast_records=rast_records, weights=normalized)

    if max_workers <= 1 or len(de_records) <= 1:
        return [scorer(de) for de in de_records]

    chunksize = max(1, len(de_records) // (max_workers * 4))
    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        # map() yields in submission order, so DE order is preserved.
        return list(pool.map(scorer, de_records, chunksize=chunksize))


def similarity_stats(results: Sequence[MatchResult]) -> SimilarityStats:
    """Aggregate raw scores over every compared pair."""
    scores = [c.score for r in results for c in r.candidates]
    if not scores:
        return SimilarityStats(0, 0.0, 0.0, 0.0, 0, 0)
    return SimilarityStats(
        total_comparisons=len(scores),
        average_score=sum(scores) / len(scores),
        max_score=max(scores),
        min_score=min(scores),
        scores_above_80=sum(1 for s in scores if s >= 0.8),
        scores_above_90=sum(1 for s in scores if s >= 0.9),
    )
