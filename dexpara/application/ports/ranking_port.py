"""Ranking port for AI re-ranking of the top similarity candidates.

Why: The refiner only ever sees raw answer text; which vendor, model and
prompt produce it is an infrastructure detail.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from dexpara.domain.models import Candidate, Record


class RankingPort(ABC):
    """Port for judging how well candidate pages match one source page."""

    @abstractmethod
    def rank(self, de: Record, candidates: Sequence[Candidate]) -> str:
        """Ask the ranking model to score candidates against a DE record.

        Args:
            de: Source record
            candidates: Top candidates (already above min_score)

        Returns:
            Free-form answer text expected to contain a JSON array of
            {"url", "geminiScore", "reason"} objects.

        Raises:
            RankingError: transport, quota or auth failure

        Note:
            Decoding is the refiner's job; adapters must not parse the answer.
        """
        ...

    @abstractmethod
    def ping(self) -> tuple[bool, str]:
        """Check connectivity; returns (ok, human readable message)."""
        ...
