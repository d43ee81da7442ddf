"""Domain errors (typed) for the matching pipeline.

Unified error family for the application layer, without infra leaks.
"""

from dataclasses import dataclass


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state (empty sheets, bad weights, bad threshold)."""


class RankingError(DomainError):
    """External ranking capability failed (transport, quota, auth)."""


@dataclass(frozen=True)
class RankingResponseError(DomainError):
    """Ranking answer could not be decoded into scored candidates."""

    detail: str = ""

    def __str__(self) -> str:
        return self.detail


@dataclass(frozen=True)
class PipelineError(DomainError):
    """Unexpected failure inside one pipeline stage."""

    stage: str
    message: str

    def __str__(self) -> str:
        return f"{self.stage}: {self.message}"
