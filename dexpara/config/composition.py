"""Composition root: the only place that instantiates infrastructure adapters.

Why: Application/domain layers stay pure; tests wire fakes directly.
"""

from __future__ import annotations

from dexpara.application.ports import ClockPort, ProgressStorePort, RankingPort, TelemetryPort
from dexpara.application.use_cases.process_matching_job import ProcessMatchingJob
from dexpara.application.use_cases.refine_matches import RefineMatches
from dexpara.config.settings import AppSettings
from dexpara.infrastructure.progress.in_memory_store import InMemoryProgressStore
from dexpara.infrastructure.ranking.openai_ranking_adapter import OpenAIRankingAdapter
from dexpara.infrastructure.telemetry.otel_adapter import (
    NoopTelemetry,
    OpenTelemetryAdapter,
    OtelConfig,
)
from dexpara.infrastructure.time.system_clock import SystemClock


def build_clock() -> ClockPort:
    """Build clock adapter for time operations.

    Note:
        Tests should inject FakeClock or similar test doubles instead.
    """
    return SystemClock()


def build_progress_store(clock: ClockPort) -> ProgressStorePort:
    return InMemoryProgressStore(clock)


def build_ranker(settings: AppSettings) -> RankingPort | None:
    """Build the AI ranking adapter, or None when ranking is off/unconfigured.

    Environment variables:
        RANKING_ENABLED, RANKING_API_KEY (or GEMINI_API_KEY), RANKING_BASE_URL,
        RANKING_MODEL, RANKING_FALLBACK_MODELS, RANKING_TIMEOUT_S
    """
    if not settings.ranking_available:
        return None
    return OpenAIRankingAdapter(
        api_key=settings.ranking_api_key,
        base_url=settings.ranking_base_url,
        model=settings.ranking_model,
        fallback_models=settings.ranking_fallback_models,
        timeout_s=settings.ranking_timeout_s,
    )


def build_telemetry(settings: AppSettings) -> TelemetryPort:
    if not settings.telemetry_enabled:
        return NoopTelemetry()
    return OpenTelemetryAdapter(
        OtelConfig(
            service_name="dexpara",
            otlp_endpoint=settings.otlp_endpoint or None,
            environment=settings.telemetry_environment,
        )
    )


def build_refiner(
    settings: AppSettings,
    ranker: RankingPort | None,
    telemetry: TelemetryPort | None = None,
) -> RefineMatches:
    return RefineMatches(
        ranker=ranker,
        delay_s=settings.ranking_delay_ms / 1000,
        max_errors=settings.ranking_max_errors,
        top_n=settings.ranking_top_n,
        telemetry=telemetry,
    )


class Container:
    """Process-wide singletons for the interfaces.

    The progress store must be one instance shared by the job runner and the
    progress readers, so it is built once here and handed to both.
    """

    def __init__(self, settings: AppSettings | None = None) -> None:
        self.settings = settings or AppSettings()
        self.clock = build_clock()
        self.progress = build_progress_store(self.clock)
        self.telemetry = build_telemetry(self.settings)
        self.ranker = build_ranker(self.settings)
        self.refiner = build_refiner(self.settings, self.ranker, self.telemetry)

    def get_job_use_case(self) -> ProcessMatchingJob:
        return ProcessMatchingJob(
            progress=self.progress,
            refiner=self.refiner,
            clock=self.clock,
            telemetry=self.telemetry,
            match_workers=self.settings.match_workers,
        )


def build_container(settings: AppSettings | None = None) -> Container:
    return Container(settings)
