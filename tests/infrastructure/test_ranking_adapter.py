"""Contract tests for the OpenAI-compatible ranking adapter using a fake module.

The real openai package is never contacted: a fake module exposing ``OpenAI``
is placed in sys.modules before the adapter's lazy import runs.
"""

import sys
import types
from types import SimpleNamespace

import pytest

from dexpara.domain.errors import RankingError
from dexpara.domain.models import Candidate, FieldScores, Record
from dexpara.infrastructure.ranking.openai_ranking_adapter import (
    OpenAIRankingAdapter,
    build_ranking_prompt,
)

DE = Record(url="/a", slug="blusa-azul", meta_title="Blusa Azul", h1="Blusa")
CANDS = [
    Candidate(
        record=Record(url="/b", slug="camiseta-azul", meta_title="Camiseta Azul"),
        score=0.8532,
        details=FieldScores(0.9, 0.7, 0.0, 0.5),
    )
]


class FakeCompletions:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self.owner = owner

    def create(self, model, messages, temperature, max_tokens):  # type: ignore[no-untyped-def]
        self.owner.calls.append({"model": model, "messages": messages})
        if model in self.owner.failing_models:
            raise ConnectionError(f"{model} unavailable")
        message = SimpleNamespace(content=self.owner.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    instances: list["FakeOpenAI"] = []

    def __init__(self, base_url, api_key, timeout):  # type: ignore[no-untyped-def]
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.calls: list[dict] = []
        self.failing_models: set[str] = set()
        self.reply = '[{"url": "/b", "geminiScore": 0.9, "reason": "ok"}]'
        self.chat = SimpleNamespace(completions=FakeCompletions(self))
        FakeOpenAI.instances.append(self)


@pytest.fixture()
def fake_openai(monkeypatch):
    FakeOpenAI.instances = []
    module = types.ModuleType("openai")
    module.OpenAI = FakeOpenAI  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "openai", module)
    return FakeOpenAI


def test_prompt_lists_source_and_candidates():
    prompt = build_ranking_prompt(DE, CANDS)
    assert "- URL: /a" in prompt
    assert "- Slug: blusa-azul" in prompt
    assert "1. URL: /b" in prompt
    assert "Score atual: 85.3%" in prompt
    assert '"geminiScore"' in prompt


def test_rank_returns_raw_text_and_reuses_client(fake_openai):
    adapter = OpenAIRankingAdapter(api_key="k", base_url="http://llm.local/v1", timeout_s=5)

    text = adapter.rank(DE, CANDS)
    adapter.rank(DE, CANDS)

    assert text.startswith('[{"url": "/b"')
    assert len(fake_openai.instances) == 1
    client = fake_openai.instances[0]
    assert client.base_url == "http://llm.local/v1"
    assert client.timeout == 5
    assert client.calls[0]["model"] == "gemini-1.5-flash"
    assert client.calls[0]["messages"][0]["role"] == "system"
    assert "blusa-azul" in client.calls[0]["messages"][1]["content"]


def test_rank_wraps_transport_errors(fake_openai):
    adapter = OpenAIRankingAdapter(api_key="k", model="m1")
    adapter._get_client().failing_models.add("m1")

    with pytest.raises(RankingError, match="m1 unavailable"):
        adapter.rank(DE, CANDS)


def test_ping_switches_to_first_working_fallback(fake_openai):
    adapter = OpenAIRankingAdapter(api_key="k", model="m1", fallback_models=("m1", "m2", "m3"))
    adapter._get_client().failing_models.update({"m1"})

    ok, message = adapter.ping()

    assert ok
    assert adapter.model == "m2"
    assert "m2" in message
    assert [c["model"] for c in fake_openai.instances[0].calls] == ["m1", "m2"]


def test_ping_reports_when_no_model_answers(fake_openai):
    adapter = OpenAIRankingAdapter(api_key="k", model="m1", fallback_models=("m2",))
    adapter._get_client().failing_models.update({"m1", "m2"})

    ok, message = adapter.ping()

    assert not ok
    assert message == "No working ranking models found"
    assert adapter.model == "m1"
