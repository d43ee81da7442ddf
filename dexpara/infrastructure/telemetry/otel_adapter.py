"""OpenTelemetry adapter for pipeline metrics.

Instruments emitted by the matching pipeline:
- dexpara.jobs.total{status}             counter
- dexpara.ranking.calls{outcome}         counter
- dexpara.ranking.breaker_tripped        counter
- dexpara.stage.duration_ms{stage}       histogram
"""

from collections.abc import Mapping
from dataclasses import dataclass
from importlib import import_module
from typing import Any

from loguru import logger

from dexpara.application.ports import TelemetryPort


@dataclass
class OtelConfig:
    service_name: str = "dexpara"
    otlp_endpoint: str | None = None  # e.g. "http://localhost:4317"
    environment: str = "production"
    enable_console: bool = False


def _build_meter(cfg: OtelConfig) -> Any | None:
    """Install a MeterProvider and return a meter, or None if the SDK is unusable."""
    try:
        sdk_metrics = import_module("opentelemetry.sdk.metrics")
        sdk_export = import_module("opentelemetry.sdk.metrics.export")
        sdk_resources = import_module("opentelemetry.sdk.resources")
        api_metrics = import_module("opentelemetry.metrics")

        readers = []
        if cfg.otlp_endpoint:
            otlp = import_module("opentelemetry.exporter.otlp.proto.grpc.metric_exporter")
            readers.append(
                sdk_export.PeriodicExportingMetricReader(
                    otlp.OTLPMetricExporter(endpoint=cfg.otlp_endpoint)
                )
            )
        if cfg.enable_console:
            readers.append(
                sdk_export.PeriodicExportingMetricReader(sdk_export.ConsoleMetricExporter())
            )

        resource = sdk_resources.Resource.create(
            {"service.name": cfg.service_name, "deployment.environment": cfg.environment}
        )
        api_metrics.set_meter_provider(
            sdk_metrics.MeterProvider(resource=resource, metric_readers=readers)
        )
        return api_metrics.get_meter("dexpara")
    except Exception as ex:
        logger.warning("OpenTelemetry unavailable, metrics disabled: {}", ex)
        return None


class OpenTelemetryAdapter(TelemetryPort):
    """Counters and histograms created on first use.

    Recording errors are logged at debug level and dropped.
    """

    def __init__(self, cfg: OtelConfig) -> None:
        self._cfg = cfg
        self._meter = _build_meter(cfg)
        self._counters: dict[str, Any] = {}
        self._histograms: dict[str, Any] = {}

    def incr(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        if self._meter is None:
            return
        try:
            counter = self._counters.get(name)
            if counter is None:
                counter = self._counters[name] = self._meter.create_counter(name)
            counter.add(1, attributes=dict(labels or {}))
        except Exception as ex:
            logger.debug("Counter {} not recorded: {}", name, ex)

    def observe(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        if self._meter is None:
            return
        try:
            histogram = self._histograms.get(name)
            if histogram is None:
                histogram = self._histograms[name] = self._meter.create_histogram(name, unit="ms")
            histogram.record(value, attributes=dict(labels or {}))
        except Exception as ex:
            logger.debug("Histogram {} not recorded: {}", name, ex)


class NoopTelemetry(TelemetryPort):
    """Used when TELEMETRY_ENABLED is off."""

    def incr(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        pass

    def observe(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        pass
