"""Ranking adapter for OpenAI-compatible chat endpoints.

Gemini is reached through Google's OpenAI-compatible endpoint, so the same
client serves Gemini, vLLM or OpenAI by switching base_url/model.

The openai package is imported on first call; any client failure surfaces
as RankingError.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any

from loguru import logger

from dexpara.application.ports.ranking_port import RankingPort
from dexpara.domain.errors import RankingError
from dexpara.domain.models import Candidate, Record

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

SYSTEM_PROMPT = (
    "Você é um especialista em e-commerce e análise semântica de produtos. "
    "Responda somente com JSON válido."
)


def build_ranking_prompt(de: Record, candidates: Sequence[Candidate]) -> str:
    """Prompt asking for one {url, geminiScore, reason} object per candidate."""
    lines = [
        "Encontre o melhor match semântico entre a URL de origem e as candidatas,",
        "considerando categoria, tipo e características do produto.",
        'Nunca case tipos diferentes (ex.: "blusa" com "bermuda", "sapato" com "óculos").',
        "",
        "URL DE (origem):",
        f"- URL: {de.url}",
        f"- Slug: {de.slug}",
        f"- Meta Title: {de.meta_title}",
        f"- Meta Description: {de.meta_description}",
        f"- H1: {de.h1}",
        "",
        "URLs candidatas RASTREIO:",
    ]
    for i, c in enumerate(candidates, 1):
        r = c.record
        lines += [
            f"{i}. URL: {r.url}",
            f"   - Slug: {r.slug}",
            f"   - Meta Title: {r.meta_title}",
            f"   - Meta Description: {r.meta_description}",
            f"   - H1: {r.h1}",
            f"   - Score atual: {c.score * 100:.1f}%",
        ]
    lines += [
        "",
        "Critérios: categoria do produto, função, características, público e ocasião.",
        "Scores: 0.9-1.0 mesmo produto; 0.7-0.8 similares; 0.5-0.6 categoria relacionada;",
        "0.3-0.4 pouca semelhança; 0.0-0.2 categorias diferentes.",
        "",
        "Responda APENAS com um array JSON, sem texto adicional:",
        '[{"url": "url_da_candidata", "geminiScore": 0.95, "reason": "explicação"}]',
    ]
    return "\n".join(lines)


@dataclass
class OpenAIRankingAdapter(RankingPort):
    api_key: str
    base_url: str = GEMINI_OPENAI_BASE_URL
    model: str = "gemini-1.5-flash"
    fallback_models: Sequence[str] = field(
        default_factory=lambda: ("gemini-1.5-flash", "gemini-1.5-pro", "gemini-pro")
    )
    timeout_s: float = 30.0
    temperature: float = 0.2
    max_tokens: int = 1024

    def __post_init__(self) -> None:
        # client is built lazily, see _get_client
        self._client: Any | None = None

    def _get_client(self) -> Any:
        if self._client is None:
            module = import_module("openai")
            self._client = module.OpenAI(
                base_url=self.base_url, api_key=self.api_key, timeout=self.timeout_s
            )
        return self._client

    def _complete(self, model: str, prompt: str) -> str:
        resp: Any = self._get_client().chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return resp.choices[0].message.content or ""

    def rank(self, de: Record, candidates: Sequence[Candidate]) -> str:
        try:
            return self._complete(self.model, build_ranking_prompt(de, candidates))
        except Exception as ex:  # noqa: BLE001
            raise RankingError(f"ranking request failed: {ex}") from ex

    def ping(self) -> tuple[bool, str]:
        """Try the configured model, then the fallbacks; keep the first that answers."""
        models = [self.model, *(m for m in self.fallback_models if m != self.model)]
        for name in models:
            try:
                logger.info("Testing ranking model: {}", name)
                self._complete(name, "Hello, are you working?")
            except Exception as ex:  # noqa: BLE001
                logger.warning("Model {} failed: {}", name, ex)
                continue
            self.model = name
            return True, f"Ranking API is working with model: {name}"
        return False, "No working ranking models found"
