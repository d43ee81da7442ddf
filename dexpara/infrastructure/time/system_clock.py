"""Wall-clock adapter (UTC) behind ClockPort."""

from __future__ import annotations

from datetime import UTC, datetime

from ...application.ports.clock_port import ClockPort


class SystemClock(ClockPort):
    """Timezone-aware UTC now; stamps progress records and session ids."""

    def now(self) -> datetime:  # pragma: no cover - trivial
        return datetime.now(UTC)
