"""Metrics sink for pipeline counters and stage timings."""

from collections.abc import Mapping
from typing import Protocol


class TelemetryPort(Protocol):
    """Anything with incr/observe; adapters must never raise into the pipeline."""

    def incr(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        """Add one to counter ``name``."""
        ...

    def observe(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        """Record ``value`` in histogram ``name``."""
        ...
