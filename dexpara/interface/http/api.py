"""HTTP API for matching jobs and live progress.

Why: Endpoints only translate HTTP to use-case calls and back.
Spreadsheet parsing/rendering stays with the client: rows come in as JSON
and the report goes back as JSON.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel, Field

from dexpara.application.dto.match_dto import MatchJobRequest, MatchReport
from dexpara.application.ports.progress_store_port import ProgressStorePort
from dexpara.config.composition import Container, build_container
from dexpara.config.logging_setup import configure_logging
from dexpara.domain.errors import ValidationError
from dexpara.domain.models import Candidate, FieldScores
from dexpara.domain.normalization import normalize

API_VERSION = "1.0.0"


# Pydantic models for request validation
class ProcessRequestModel(BaseModel):
    """Request model for /api/process and /api/jobs."""

    de_rows: list[dict[str, Any]]
    rast_rows: list[dict[str, Any]]
    weights: list[float] | None = None
    min_score: float | None = None
    use_ai: bool = True
    session_id: str | None = None  # lets the client open the SSE stream first


class EnhanceCandidateModel(BaseModel):
    url: str = ""
    slug: str = ""
    meta_title: str = ""
    meta_description: str = ""
    h1: str = ""
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class EnhanceRequestModel(BaseModel):
    """Request model for /api/gemini/enhance."""

    de_row: dict[str, Any]
    candidates: list[EnhanceCandidateModel]


class JobAcceptedModel(BaseModel):
    status: str
    session_id: str


container: Container | None = None


def get_container() -> Container:
    global container
    if container is None:
        container = build_container()
    return container


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    c = get_container()
    configure_logging(c.settings.log_level)
    logger.info("Ranking model {}", "enabled" if c.ranker else "disabled")
    yield


app = FastAPI(title="DE x PARA Matching API", version=API_VERSION, lifespan=lifespan)


# ===== Serialization =====


def _scores_dict(s: FieldScores) -> dict[str, float]:
    return {
        "slugScore": s.slug_score,
        "titleScore": s.title_score,
        "descScore": s.desc_score,
        "h1Score": s.h1_score,
    }


def candidate_to_dict(c: Candidate) -> dict[str, Any]:
    r = c.record
    out: dict[str, Any] = {
        "url": r.url,
        "slug": r.slug,
        "meta_title": r.meta_title,
        "meta_description": r.meta_description,
        "h1": r.h1,
        "score": c.score,
        "details": _scores_dict(c.details),
    }
    if c.is_refined:
        out.update(geminiScore=c.gemini_score, geminiReason=c.reason, finalScore=c.final_score)
    return out


def report_to_dict(report: MatchReport) -> dict[str, Any]:
    stats = report.stats
    return {
        "sessionId": report.session_id,
        "minScore": report.min_score,
        "aiRefined": report.ai_refined,
        "stats": {
            "totalComparisons": stats.total_comparisons,
            "averageScore": stats.average_score,
            "maxScore": stats.max_score,
            "minScore": stats.min_score,
            "scoresAbove80": stats.scores_above_80,
            "scoresAbove90": stats.scores_above_90,
        },
        "rows": [
            {
                "deUrl": row.de_url,
                "best": candidate_to_dict(row.best) if row.best else None,
                "matches": [candidate_to_dict(c) for c in row.matches],
            }
            for row in report.rows
        ],
    }


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _job_request(req: ProcessRequestModel, c: Container) -> MatchJobRequest:
    return MatchJobRequest(
        de_rows=req.de_rows,
        rast_rows=req.rast_rows,
        weights=req.weights or c.settings.default_weights,
        min_score=c.settings.default_min_score if req.min_score is None else req.min_score,
        use_ai=req.use_ai,
    )


async def progress_events(
    request: Request, session_id: str, store: ProgressStorePort, interval_s: float
) -> AsyncIterator[str]:
    """Poll the store and emit one event per observed change until terminal.

    A disconnecting client only stops this poller; the job keeps running.
    """
    yield _sse({"type": "connected", "sessionId": session_id})
    last = None
    while True:
        if await request.is_disconnected():
            logger.info("Client disconnected from progress stream: {}", session_id)
            return
        record = store.poll(session_id)
        if record is not None and record != last:
            last = record
            yield _sse(record.to_dict())
            if record.status.is_terminal:
                return
        await asyncio.sleep(interval_s)


# ===== Endpoints =====


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {
        "status": "OK",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
    }


@app.get("/api/gemini/test")
def gemini_test() -> dict[str, Any]:
    ranker = get_container().ranker
    if ranker is None:
        return {"success": False, "message": "Ranking API key not configured"}
    ok, message = ranker.ping()
    return {"success": ok, "message": message}


@app.get("/api/progress/{session_id}")
async def progress(session_id: str, request: Request) -> StreamingResponse:
    c = get_container()
    interval = c.settings.progress_poll_interval_ms / 1000
    return StreamingResponse(
        progress_events(request, session_id, c.progress, interval),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@app.post("/api/process")
def process(req: ProcessRequestModel) -> JSONResponse:
    """Run a job to completion and return the report.

    Runs in the threadpool, so SSE readers keep being served meanwhile.
    """
    c = get_container()
    uc = c.get_job_use_case()
    sid = req.session_id or uc.new_session_id()
    result = uc.execute(_job_request(req, c), session_id=sid)

    if result.ok:
        assert result.value is not None
        return JSONResponse(report_to_dict(result.value))

    status = 400 if isinstance(result.error, ValidationError) else 500
    return JSONResponse(
        status_code=status,
        content={
            "error": "Invalid input" if status == 400 else "Internal server error",
            "message": str(result.error),
            "sessionId": sid,
        },
    )


@app.post("/api/jobs", response_model=JobAcceptedModel, status_code=202)
def start_job(req: ProcessRequestModel, background_tasks: BackgroundTasks) -> JobAcceptedModel:
    """Start a job in the background; follow it on /api/progress/{session_id}."""
    c = get_container()
    uc = c.get_job_use_case()
    sid = req.session_id or uc.new_session_id()
    background_tasks.add_task(uc.execute, _job_request(req, c), sid)
    return JobAcceptedModel(status="accepted", session_id=sid)


@app.post("/api/gemini/enhance")
def gemini_enhance(req: EnhanceRequestModel) -> list[dict[str, Any]]:
    c = get_container()
    de = normalize(req.de_row)
    candidates = [
        Candidate(
            record=normalize(cand.model_dump(exclude={"score"})),
            score=cand.score,
            details=FieldScores(0.0, 0.0, 0.0, 0.0),
        )
        for cand in req.candidates
    ]
    result = c.refiner.refine_one(de, candidates)
    if not result.ok:
        status = 400 if isinstance(result.error, ValidationError) else 502
        raise HTTPException(status_code=status, detail=str(result.error))
    assert result.value is not None
    return [candidate_to_dict(cand) for cand in result.value]
