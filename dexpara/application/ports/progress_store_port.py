"""Progress store port shared by the pipeline and progress readers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from dexpara.domain.models import ProgressRecord


class ProgressStorePort(ABC):
    """Session-keyed live progress, one record per session.

    Lifecycle: created on the first write, overwritten on every stage
    transition, removed by the first poll that observes a terminal status.
    Implementations must make each write and the read-then-delete of a
    terminal record atomic.
    """

    @abstractmethod
    def update(
        self,
        session_id: str,
        step: str,
        percentage: float,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> ProgressRecord:
        """Overwrite the session record; percentage 100 means completed."""
        ...

    @abstractmethod
    def fail(
        self, session_id: str, message: str, details: Mapping[str, Any] | None = None
    ) -> ProgressRecord:
        """Write a terminal error record (percentage 0)."""
        ...

    @abstractmethod
    def poll(self, session_id: str) -> ProgressRecord | None:
        """Return the current record; a terminal one is deleted on read."""
        ...

    @abstractmethod
    def discard(self, session_id: str) -> None:
        """Drop a session record regardless of status.

        For runners with no progress reader (the CLI), whose terminal record
        would otherwise never be polled away.
        """
        ...
