from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """Source of the current time for progress timestamps and session ids.

    SystemClock is the only production implementation; tests pin time with a
    fixed fake.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...
