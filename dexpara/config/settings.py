"""Application settings with environment-driven configuration.

Why: Single place that reads the environment; everything else receives
settings via dependency injection.
"""

import os
from dataclasses import dataclass, field


def _floats(raw: str) -> tuple[float, ...]:
    return tuple(float(p) for p in raw.split(",") if p.strip())


def _names(raw: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from environment variables.

    This is the ONLY place where environment variables are read.

    Feature Flags:
    - ranking_enabled: run the AI refinement stage (also needs an API key)
    - telemetry_enabled: export OpenTelemetry metrics
    """

    # ===== Matching Configuration =====
    default_weights: tuple[float, ...] = field(
        default_factory=lambda: _floats(os.getenv("DEXPARA_DEFAULT_WEIGHTS", "0.4,0.25,0.2,0.15"))
    )
    # Order: slug, meta title, meta description, h1

    default_min_score: float = field(
        default_factory=lambda: float(os.getenv("DEXPARA_MIN_SCORE", "0.8"))
    )
    match_workers: int = field(default_factory=lambda: int(os.getenv("DEXPARA_MATCH_WORKERS", "1")))
    # >1 scores DE rows in a process pool

    # ===== Ranking (AI) Configuration =====
    ranking_enabled: bool = field(
        default_factory=lambda: os.getenv("RANKING_ENABLED", "true").lower() == "true"
    )
    ranking_base_url: str = field(
        default_factory=lambda: os.getenv(
            "RANKING_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
        )
    )
    ranking_api_key: str = field(
        default_factory=lambda: os.getenv("RANKING_API_KEY") or os.getenv("GEMINI_API_KEY", "")
    )
    ranking_model: str = field(
        default_factory=lambda: os.getenv("RANKING_MODEL", "gemini-1.5-flash")
    )
    ranking_fallback_models: tuple[str, ...] = field(
        default_factory=lambda: _names(
            os.getenv("RANKING_FALLBACK_MODELS", "gemini-1.5-flash,gemini-1.5-pro,gemini-pro")
        )
    )
    ranking_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("RANKING_TIMEOUT_S", "30"))
    )
    ranking_delay_ms: int = field(
        default_factory=lambda: int(os.getenv("RANKING_DELAY_MS", "500"))
    )
    # Pause between ranking calls (rate limit pacing, not retry)

    ranking_max_errors: int = field(
        default_factory=lambda: int(os.getenv("RANKING_MAX_ERRORS", "3"))
    )
    # Circuit breaker trips once failures exceed this count

    ranking_top_n: int = field(default_factory=lambda: int(os.getenv("RANKING_TOP_N", "3")))

    # ===== Progress Configuration =====
    progress_poll_interval_ms: int = field(
        default_factory=lambda: int(os.getenv("PROGRESS_POLL_INTERVAL_MS", "500"))
    )

    # ===== Telemetry Configuration =====
    telemetry_enabled: bool = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENABLED", "false").lower() == "true"
    )
    otlp_endpoint: str = field(default_factory=lambda: os.getenv("OTLP_ENDPOINT", ""))
    # Empty string = no OTLP export

    telemetry_environment: str = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENVIRONMENT", "production")
    )

    # ===== Logging =====
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    @property
    def ranking_available(self) -> bool:
        return self.ranking_enabled and bool(self.ranking_api_key)
