# dexpara/application/use_cases/process_matching_job.py
from __future__ import annotations

import secrets
import time
from collections.abc import Mapping
from typing import Any

from loguru import logger

from dexpara.application.dto.match_dto import MatchJobRequest, MatchReport
from dexpara.application.ports.clock_port import ClockPort
from dexpara.application.ports.progress_store_port import ProgressStorePort
from dexpara.application.ports.telemetry_port import TelemetryPort
from dexpara.application.use_cases.refine_matches import RefineMatches
from dexpara.domain.errors import DomainError, PipelineError, ValidationError
from dexpara.domain.models import PipelineStage, gemini_stage_percentage
from dexpara.domain.normalization import normalize_rows
from dexpara.domain.services.matching import match, normalize_weights, similarity_stats
from dexpara.domain.types import Result


class ProcessMatchingJob:
    """
    Application Use-Case sequencing the matching pipeline:
    parsing -> normalizing -> similarities -> gemini -> generating -> completed.

    Every stage transition is written to the progress store before the stage
    runs; every failure writes a terminal error record before returning.
    No exception escapes ``execute``; callers get a Result.
    """

    def __init__(
        self,
        progress: ProgressStorePort,
        refiner: RefineMatches,
        clock: ClockPort,
        telemetry: TelemetryPort | None = None,
        match_workers: int = 1,
    ) -> None:
        self.progress = progress
        self.refiner = refiner
        self.clock = clock
        self.telemetry = telemetry
        self.match_workers = match_workers

    def new_session_id(self) -> str:
        millis = int(self.clock.now().timestamp() * 1000)
        return f"session_{millis}_{secrets.token_hex(5)[:9]}"

    def execute(
        self, req: MatchJobRequest, session_id: str | None = None
    ) -> Result[MatchReport, DomainError]:
        sid = session_id or self.new_session_id()
        stage = PipelineStage.PARSING
        started = time.perf_counter()

        def enter(
            next_stage: PipelineStage, message: str, details: Mapping[str, Any] | None = None
        ) -> None:
            nonlocal stage, started
            self._observe_stage(stage, started)
            stage, started = next_stage, time.perf_counter()
            self.progress.update(sid, next_stage.value, next_stage.milestone, message, details)

        try:
            # 1) Parsing / validation
            self.progress.update(
                sid, stage.value, stage.milestone, "Analisando dados das planilhas..."
            )
            if not req.de_rows or not req.rast_rows:
                return self._fail(
                    sid,
                    ValidationError("Invalid data: DE or RASTREIO sheets are empty"),
                    "Erro: Planilhas DE ou RASTREIO estão vazias",
                )
            if not 0.0 <= req.min_score <= 1.0:
                return self._fail(
                    sid,
                    ValidationError("min_score must be within [0, 1]"),
                    "Erro: pontuação mínima inválida",
                )
            weights = normalize_weights(req.weights)
            logger.info(
                "[{}] Processing with weights {} and min_score {}", sid, weights, req.min_score
            )

            # 2) Normalize
            enter(PipelineStage.NORMALIZING, "Normalizando dados...")
            de = normalize_rows(req.de_rows)
            rast = normalize_rows(req.rast_rows)

            # 3) Similarities
            enter(
                PipelineStage.SIMILARITIES,
                f"Calculando similaridades: {len(de)} URLs DE vs {len(rast)} URLs RASTREIO...",
            )
            results = match(de, rast, weights, max_workers=self.match_workers)
            logger.info("[{}] Scored {} DE URLs against {} RASTREIO URLs", sid, len(de), len(rast))

            # 4) AI refinement (50% .. 90%)
            ai_refined = req.use_ai and self.refiner.ranker is not None
            if ai_refined:
                enter(PipelineStage.GEMINI, "Aplicando inteligência artificial Gemini...")

                def on_progress(percent: float) -> None:
                    self.progress.update(
                        sid,
                        PipelineStage.GEMINI.value,
                        gemini_stage_percentage(percent),
                        f"Gemini AI: {percent:.0f}% concluído",
                        {"processed": percent},
                    )

                results = self.refiner.execute(results, req.min_score, on_progress)

            # 5) Report
            enter(PipelineStage.GENERATING, "Gerando resultado...")
            stats = similarity_stats(results)
            report = MatchReport.build(sid, results, req.min_score, stats, ai_refined)

            enter(
                PipelineStage.COMPLETED,
                "Processamento concluído com sucesso!",
                {**report.details, "aiRefined": ai_refined},
            )
            self._count("completed")
            return Result.success(report)

        except ValidationError as ex:
            return self._fail(sid, ex, f"Erro: {ex}")
        except Exception as ex:
            logger.exception("[{}] Processing failed during {}", sid, stage.value)
            return self._fail(sid, PipelineError(stage=stage.value, message=str(ex)), f"Erro: {ex}")

    def _fail(self, sid: str, error: DomainError, message: str) -> Result[MatchReport, DomainError]:
        self.progress.fail(sid, message, {"error": str(error)})
        logger.error("[{}] {}", sid, message)
        self._count("error")
        return Result.failure(error)

    def _count(self, status: str) -> None:
        if self.telemetry is not None:
            self.telemetry.incr("dexpara.jobs.total", {"status": status})

    def _observe_stage(self, stage: PipelineStage, started: float) -> None:
        if self.telemetry is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.telemetry.observe("dexpara.stage.duration_ms", elapsed_ms, {"stage": stage.value})
