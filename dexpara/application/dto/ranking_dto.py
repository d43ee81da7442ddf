# dexpara/application/dto/ranking_dto.py
"""Strict decode of the ranking model's free-form answer.

The model is asked for a bare JSON array but often wraps it in prose or a
code fence; the first '[' .. last ']' span is taken and validated.
"""

from __future__ import annotations

import math
import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictFloat, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from dexpara.domain.errors import RankingResponseError
from dexpara.domain.models import AiRanking
from dexpara.domain.types import Result

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

DEFAULT_REASON = "No reason provided"


class AiRankingModel(BaseModel):
    """One element of the JSON array returned by the ranking model."""

    model_config = ConfigDict(extra="ignore")

    url: str
    # booleans and numeric strings are malformed answers, not scores
    score: StrictFloat = Field(validation_alias=AliasChoices("geminiScore", "aiScore", "score"))
    reason: str | None = None


_RANKINGS = TypeAdapter(list[AiRankingModel])


def parse_ranking_response(text: str) -> Result[list[AiRanking], RankingResponseError]:
    """Decode a ranking answer into clamped AiRanking entries.

    Returns:
        Result with the entries in answer order, or RankingResponseError when
        no array is present, the JSON/schema is invalid, or a score is not a
        finite number.
    """
    found = _ARRAY_RE.search(text or "")
    if not found:
        return Result.failure(RankingResponseError("No JSON found in response"))

    try:
        items = _RANKINGS.validate_json(found.group(0))
    except PydanticValidationError as ex:
        return Result.failure(
            RankingResponseError(f"invalid ranking payload ({ex.error_count()} errors)")
        )

    rankings: list[AiRanking] = []
    for item in items:
        if not math.isfinite(item.score):
            return Result.failure(RankingResponseError(f"non-finite score for {item.url}"))
        rankings.append(
            AiRanking(
                url=item.url,
                ai_score=max(0.0, min(1.0, item.score)),
                reason=item.reason or DEFAULT_REASON,
            )
        )
    return Result.success(rankings)
