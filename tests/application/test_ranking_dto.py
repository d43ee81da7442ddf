"""Tests for strict decoding of ranking model answers."""

import pytest

from dexpara.application.dto.ranking_dto import DEFAULT_REASON, parse_ranking_response
from dexpara.domain.errors import RankingResponseError
from dexpara.domain.models import AiRanking


def test_parses_array_wrapped_in_prose():
    text = 'Claro! ```json\n[{"url": "/b", "geminiScore": 0.95, "reason": "mesmo tipo"}]\n```'
    result = parse_ranking_response(text)
    assert result.ok
    assert result.value == [AiRanking(url="/b", ai_score=0.95, reason="mesmo tipo")]


def test_accepts_alternative_score_keys():
    result = parse_ranking_response('[{"url": "/b", "aiScore": 0.5}, {"url": "/c", "score": 0.1}]')
    assert result.ok
    assert [r.ai_score for r in result.value] == [0.5, 0.1]
    assert result.value[0].reason == DEFAULT_REASON


def test_scores_are_clamped():
    text = '[{"url": "/b", "geminiScore": 1.7}, {"url": "/c", "geminiScore": -2}]'
    result = parse_ranking_response(text)
    assert result.ok
    assert [r.ai_score for r in result.value] == [1.0, 0.0]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "no json here",
        "[not json]",
        '[{"geminiScore": 0.9}]',
        '[{"url": "/b", "geminiScore": "high"}]',
        '{"url": "/b", "geminiScore": 0.9}',
    ],
)
def test_invalid_answers_fail(text):
    result = parse_ranking_response(text)
    assert not result.ok
    assert isinstance(result.error, RankingResponseError)


def test_empty_array_is_valid():
    result = parse_ranking_response("[]")
    assert result.ok
    assert result.value == []


@pytest.mark.parametrize("score", ["true", '"0.9"', "null"])
def test_non_numeric_score_types_are_rejected(score):
    result = parse_ranking_response(f'[{{"url": "/b", "geminiScore": {score}}}]')
    assert not result.ok
    assert isinstance(result.error, RankingResponseError)


def test_integer_scores_are_numbers():
    result = parse_ranking_response('[{"url": "/b", "geminiScore": 1}]')
    assert result.ok
    assert result.value[0].ai_score == 1.0
