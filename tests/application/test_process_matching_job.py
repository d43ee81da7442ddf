"""Tests for the ProcessMatchingJob use case (stage sequencing + progress)."""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from dexpara.application.dto.match_dto import MatchJobRequest
from dexpara.application.ports.clock_port import ClockPort
from dexpara.application.ports.progress_store_port import ProgressStorePort
from dexpara.application.ports.ranking_port import RankingPort
from dexpara.application.use_cases import process_matching_job as job_module
from dexpara.application.use_cases.process_matching_job import ProcessMatchingJob
from dexpara.application.use_cases.refine_matches import RefineMatches
from dexpara.domain.errors import PipelineError, ValidationError
from dexpara.domain.models import Candidate, ProgressRecord, ProgressStatus, Record

DE_ROWS = [
    {
        "url": "/a",
        "slug": "blusa-azul",
        "meta_title": "Blusa Azul",
        "meta_description": "",
        "h1": "Blusa",
    }
]
RAST_ROWS = [
    {
        "url": "/b",
        "slug": "camiseta-azul",
        "meta_title": "Camiseta Azul",
        "meta_description": "",
        "h1": "Camiseta",
    },
    {
        "url": "/c",
        "slug": "bermuda-jeans",
        "meta_title": "Bermuda",
        "meta_description": "",
        "h1": "Bermuda",
    },
]


# --- Fake Ports for Testing ---


class FakeClock(ClockPort):
    def now(self) -> datetime:
        return datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@dataclass
class FakeProgressStore(ProgressStorePort):
    """Keeps every write so the sequence of stages can be asserted."""

    history: list[ProgressRecord] = field(default_factory=list)

    def update(
        self,
        session_id: str,
        step: str,
        percentage: float,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> ProgressRecord:
        status = ProgressStatus.COMPLETED if round(percentage) == 100 else ProgressStatus.PROCESSING
        return self._put(session_id, step, round(percentage), message, status, details)

    def fail(
        self, session_id: str, message: str, details: Mapping[str, Any] | None = None
    ) -> ProgressRecord:
        return self._put(session_id, "error", 0, message, ProgressStatus.ERROR, details)

    def poll(self, session_id: str) -> ProgressRecord | None:
        return self.history[-1] if self.history else None

    def discard(self, session_id: str) -> None:
        pass

    def _put(self, sid, step, pct, message, status, details):  # type: ignore[no-untyped-def]
        record = ProgressRecord(sid, step, pct, message, status, "t", dict(details or {}))
        self.history.append(record)
        return record


@dataclass
class FakeRanker(RankingPort):
    answer: str = '[{"url": "/b", "geminiScore": 0.95, "reason": "mesma peça"}]'
    calls: int = 0

    def rank(self, de: Record, candidates: Sequence[Candidate]) -> str:
        self.calls += 1
        return self.answer

    def ping(self) -> tuple[bool, str]:
        return True, "ok"


def _job(store: ProgressStorePort, ranker: RankingPort | None = None) -> ProcessMatchingJob:
    refiner = RefineMatches(ranker, sleep=lambda _s: None)
    return ProcessMatchingJob(progress=store, refiner=refiner, clock=FakeClock())


def _req(**overrides: Any) -> MatchJobRequest:
    params: dict[str, Any] = {
        "de_rows": DE_ROWS,
        "rast_rows": RAST_ROWS,
        "weights": [0.4, 0.25, 0.2, 0.15],
        "min_score": 0.8,
        "use_ai": False,
    }
    params.update(overrides)
    return MatchJobRequest(**params)


# --- Tests ---


def test_category_match_ranks_above_incompatible_category():
    store = FakeProgressStore()
    result = _job(store).execute(_req(), session_id="s1")

    assert result.ok
    report = result.value
    cands = report.results[0].candidates
    assert [c.url for c in cands] == ["/b", "/c"]
    assert cands[1].details.slug_score <= 0.1
    assert cands[0].score > cands[1].score
    assert report.ai_refined is False
    assert report.stats.total_comparisons == 2


def test_progress_milestones_without_ai():
    store = FakeProgressStore()
    _job(store).execute(_req(), session_id="s1")

    steps = [(r.step, r.percentage) for r in store.history]
    assert steps == [
        ("parsing", 10),
        ("normalizing", 20),
        ("similarities", 40),
        ("generating", 90),
        ("completed", 100),
    ]
    final = store.history[-1]
    assert final.status is ProgressStatus.COMPLETED
    assert final.details["totalProcessed"] == 1
    assert final.details["aiRefined"] is False


def test_gemini_stage_reports_progress_between_50_and_90():
    store = FakeProgressStore()
    ranker = FakeRanker()
    de = [{**DE_ROWS[0], "meta_description": "Blusa azul de algodão"}]
    rast = [{**de[0], "url": "/b"}]

    result = _job(store, ranker).execute(
        _req(de_rows=de, rast_rows=rast, use_ai=True), session_id="s1"
    )

    assert result.ok
    assert ranker.calls == 1
    gemini = [r.percentage for r in store.history if r.step == "gemini"]
    assert gemini[0] == 50
    assert gemini[-1] == 90
    assert all(50 <= p <= 90 for p in gemini)
    best = result.value.results[0].candidates[0]
    assert best.final_score == (best.score + 0.95) / 2
    assert result.value.ai_refined is True


def test_ai_stage_skipped_when_no_ranker_configured():
    store = FakeProgressStore()
    result = _job(store, ranker=None).execute(_req(use_ai=True), session_id="s1")
    assert result.ok
    assert result.value.ai_refined is False
    assert "gemini" not in [r.step for r in store.history]


def test_empty_sheets_fail_with_validation_error():
    store = FakeProgressStore()
    result = _job(store).execute(_req(de_rows=[]), session_id="s1")

    assert not result.ok
    assert isinstance(result.error, ValidationError)
    last = store.history[-1]
    assert last.status is ProgressStatus.ERROR
    assert last.percentage == 0
    assert last.message == "Erro: Planilhas DE ou RASTREIO estão vazias"


@pytest.mark.parametrize("weights", [[0, 0, 0, 0], [1, 1, 1]])
def test_invalid_weights_fail_with_validation_error(weights):
    store = FakeProgressStore()
    result = _job(store).execute(_req(weights=weights), session_id="s1")
    assert isinstance(result.error, ValidationError)
    assert store.history[-1].status is ProgressStatus.ERROR


def test_min_score_out_of_range_is_rejected():
    store = FakeProgressStore()
    result = _job(store).execute(_req(min_score=1.5), session_id="s1")
    assert isinstance(result.error, ValidationError)


def test_unexpected_failure_is_reported_with_stage(monkeypatch):
    def boom(*_args, **_kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(job_module, "match", boom)
    store = FakeProgressStore()

    result = _job(store).execute(_req(), session_id="s1")

    assert isinstance(result.error, PipelineError)
    assert result.error.stage == "similarities"
    last = store.history[-1]
    assert last.status is ProgressStatus.ERROR
    assert "disk on fire" in last.message


def test_new_session_id_format():
    job = _job(FakeProgressStore())
    sid = job.new_session_id()
    assert re.fullmatch(r"session_\d+_[0-9a-f]{9}", sid)
    assert sid.startswith(f"session_{int(FakeClock().now().timestamp() * 1000)}_")
    assert job.new_session_id() != sid
