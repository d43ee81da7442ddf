"""In-process progress store shared by the pipeline and SSE readers.

This is the production implementation of ProgressStorePort; state lives
only as long as the process (no persistence, single node).
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

from dexpara.application.ports.clock_port import ClockPort
from dexpara.application.ports.progress_store_port import ProgressStorePort
from dexpara.domain.models import PipelineStage, ProgressRecord, ProgressStatus


class InMemoryProgressStore(ProgressStorePort):
    """Dict of session id -> latest ProgressRecord behind a single lock.

    Every mutation and the poll-then-delete of a terminal record run under
    the lock, so exactly one reader ever sees a given terminal record.
    """

    def __init__(self, clock: ClockPort) -> None:
        self._clock = clock
        self._records: dict[str, ProgressRecord] = {}
        self._lock = threading.Lock()

    def update(
        self,
        session_id: str,
        step: str,
        percentage: float,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> ProgressRecord:
        pct = max(0, min(100, round(percentage)))
        status = ProgressStatus.COMPLETED if pct == 100 else ProgressStatus.PROCESSING
        return self._put(session_id, step, pct, message, status, details)

    def fail(
        self, session_id: str, message: str, details: Mapping[str, Any] | None = None
    ) -> ProgressRecord:
        return self._put(
            session_id, PipelineStage.ERROR.value, 0, message, ProgressStatus.ERROR, details
        )

    def poll(self, session_id: str) -> ProgressRecord | None:
        with self._lock:
            record = self._records.get(session_id)
            if record is not None and record.status.is_terminal:
                del self._records[session_id]
            return record

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def active_sessions(self) -> list[str]:
        """Session ids still held; for diagnostics and tests, not part of the port."""
        with self._lock:
            return list(self._records)

    def _put(
        self,
        session_id: str,
        step: str,
        percentage: int,
        message: str,
        status: ProgressStatus,
        details: Mapping[str, Any] | None,
    ) -> ProgressRecord:
        record = ProgressRecord(
            session_id=session_id,
            step=step,
            percentage=percentage,
            message=message,
            status=status,
            timestamp=self._clock.now().isoformat(),
            details=dict(details or {}),
        )
        with self._lock:
            self._records[session_id] = record
        return record
