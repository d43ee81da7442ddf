# dexpara/application/use_cases/refine_matches.py
from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from loguru import logger

from dexpara.application.dto.ranking_dto import parse_ranking_response
from dexpara.application.ports.ranking_port import RankingPort
from dexpara.application.ports.telemetry_port import TelemetryPort
from dexpara.domain.errors import DomainError, RankingError, ValidationError
from dexpara.domain.models import Candidate, MatchResult, Record
from dexpara.domain.services.refinement import (
    fallback_rankings,
    merge_rankings,
    select_top_candidates,
)
from dexpara.domain.types import Result

ProgressCallback = Callable[[float], None]  # receives percent done, 0..100


class RefineMatches:
    """
    Application Use-Case re-scoring the best similarity candidates with the
    ranking model.

    - Sequential: one ranking call per DE record, paced by ``delay_s``.
    - Per-record failures fall back to the similarity result.
    - Circuit breaker: once more than ``max_errors`` calls failed, the
      remaining records pass through without calling the model.
    """

    def __init__(
        self,
        ranker: RankingPort | None,
        delay_s: float = 0.5,
        max_errors: int = 3,
        top_n: int = 3,
        sleep: Callable[[float], None] = time.sleep,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.ranker = ranker
        self.delay_s = delay_s
        self.max_errors = max_errors
        self.top_n = top_n
        self.sleep = sleep
        self.telemetry = telemetry

    def execute(
        self,
        results: Sequence[MatchResult],
        min_score: float,
        on_progress: ProgressCallback | None = None,
    ) -> list[MatchResult]:
        total = len(results)
        refined: list[MatchResult] = []
        successes = 0
        errors = 0
        tripped = False

        if self.ranker is None:
            logger.info("Ranking model not configured, keeping similarity results")

        for i, result in enumerate(results):
            top = select_top_candidates(result, min_score, self.top_n)

            if self.ranker is None or tripped or not top:
                refined.append(result)
                self._report(on_progress, i, total)
                continue

            try:
                text = self.ranker.rank(result.de, top)
            except Exception as ex:
                errors += 1
                logger.warning("Ranking failed for {}: {}", result.de.url, ex)
                self._count("failed")
                refined.append(result)
            else:
                parsed = parse_ranking_response(text)
                if parsed.ok:
                    assert parsed.value is not None
                    successes += 1
                    self._count("success")
                    refined.append(merge_rankings(result, top, parsed.value))
                else:
                    errors += 1
                    logger.warning("Unreadable ranking for {}: {}", result.de.url, parsed.error)
                    self._count("parse_error")
                    fallback = fallback_rankings(top, f"Parse error: {parsed.error}")
                    refined.append(merge_rankings(result, top, fallback))
                # the model answered, so pace the next call
                self.sleep(self.delay_s)

            self._report(on_progress, i, total)

            if errors > self.max_errors:
                tripped = True
                remaining = total - i - 1
                if remaining:
                    logger.warning(
                        "Too many ranking errors ({}), skipping AI for the last {} records",
                        errors,
                        remaining,
                    )
                if self.telemetry is not None:
                    self.telemetry.incr("dexpara.ranking.breaker_tripped", {})

        logger.info("Ranking complete: {} successful, {} errors", successes, errors)
        return refined

    def refine_one(
        self, de: Record, candidates: Sequence[Candidate]
    ) -> Result[list[Candidate], DomainError]:
        """Score an explicit candidate list once (no breaker, no pacing).

        Every candidate gets an AI score; on a model failure the candidates'
        own scores are used with a diagnostic reason.
        """
        if not candidates:
            return Result.failure(ValidationError("candidates must not be empty"))
        if self.ranker is None:
            fallback = fallback_rankings(candidates, "Ranking model not available")
            return Result.success(self._annotate(de, candidates, fallback))

        try:
            text = self.ranker.rank(de, candidates)
        except Exception as ex:
            logger.warning("Ranking failed for {}: {}", de.url, ex)
            return Result.failure(RankingError(f"ranking failed: {ex}"))

        parsed = parse_ranking_response(text)
        if not parsed.ok:
            fallback = fallback_rankings(candidates, f"Parse error: {parsed.error}")
            return Result.success(self._annotate(de, candidates, fallback))
        assert parsed.value is not None
        return Result.success(self._annotate(de, candidates, parsed.value))

    @staticmethod
    def _annotate(de, candidates, rankings) -> list[Candidate]:  # type: ignore[no-untyped-def]
        result = MatchResult(de=de, candidates=tuple(candidates))
        merged = merge_rankings(result, candidates, rankings)
        return list(merged.candidates)

    def _count(self, outcome: str) -> None:
        if self.telemetry is not None:
            self.telemetry.incr("dexpara.ranking.calls", {"outcome": outcome})

    @staticmethod
    def _report(on_progress: ProgressCallback | None, i: int, total: int) -> None:
        if on_progress is not None:
            on_progress((i + 1) / total * 100)
