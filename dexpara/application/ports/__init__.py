"""Application ports package.

Re-exports every port so use cases and wiring import from one place.
"""

from dexpara.application.ports.clock_port import ClockPort
from dexpara.application.ports.progress_store_port import ProgressStorePort
from dexpara.application.ports.ranking_port import RankingPort
from dexpara.application.ports.telemetry_port import TelemetryPort

__all__ = [
    "ClockPort",
    "ProgressStorePort",
    "RankingPort",
    "TelemetryPort",
]
