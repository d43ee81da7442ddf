from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Outcome of a use case or decode step: either a value or a DomainError.

    Callers branch on ``ok``; failures are values, not raised exceptions.
    """

    ok: bool
    value: T | None = None
    error: E | None = None

    @staticmethod
    def success(value: T) -> "Result[T, E]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: E) -> "Result[T, E]":
        return Result(ok=False, error=error)


Score = float  # always within [0, 1] once clamped
RawRow = Mapping[str, Any]  # one spreadsheet row as delivered by ingestion
WeightVector = tuple[float, float, float, float]  # slug, title, description, h1
