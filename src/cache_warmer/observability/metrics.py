"""Prometheus metrics for warm runs with optional OTLP export.

A warm run is a short-lived batch job, so nothing is scraped: the registry is
written to a node-exporter textfile at exit (``write_metrics_textfile``) and,
when enabled, pushed over OTLP by a periodic reader.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcOTLPMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpOTLPMetricExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest, write_to_textfile

from cache_warmer.deployment_config import ObservabilityCollectorConfig


_meter_holder: dict[str, Any] = {"meter": None, "provider": None, "reader": None}


def init_metrics(
    service_name: str = "cache-warmer",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[PeriodicExportingMetricReader] | None = None,
) -> MeterProvider:
    """Initialize OpenTelemetry metrics."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    resource = Resource.create(attributes)
    provider = MeterProvider(resource=resource, metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def configure_metrics_exporter(
    config: ObservabilityCollectorConfig | None,
    *,
    service_name: str = "cache-warmer",
    resource_attributes: dict[str, str] | None = None,
) -> None:
    """Configure OTLP metrics export. Must run before the first metric is recorded."""
    if not config or not config.enabled:
        return

    endpoint = config.collector_endpoint
    if config.otlp_protocol == "http" and endpoint.endswith("/v1/traces"):
        endpoint = endpoint.removesuffix("/v1/traces") + "/v1/metrics"

    if config.otlp_protocol == "grpc":
        exporter = GrpcOTLPMetricExporter(
            endpoint=endpoint,
            headers=config.headers,
            timeout=config.timeout_seconds,
            insecure=config.grpc_insecure,
        )
    else:
        exporter = HttpOTLPMetricExporter(
            endpoint=endpoint,
            headers=config.headers,
            timeout=config.timeout_seconds,
        )

    reader = PeriodicExportingMetricReader(exporter)
    _meter_holder["reader"] = reader
    init_metrics(service_name=service_name, resource_attributes=resource_attributes, metric_readers=[reader])


def shutdown_metrics() -> None:
    """Flush pending OTLP metric exports before the process exits."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        provider.shutdown()


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


def _label_key(labels: dict[str, str]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(labels.items()))


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._wrapper.set(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to optional OTel instruments."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        otel = self._ensure_otel_instrument()
        otel.add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        otel = self._ensure_otel_instrument()
        otel.record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        otel = self._ensure_otel_instrument()
        key = _label_key(labels)
        last = self._last_values.get(key, 0.0)
        delta = value - last
        if delta:
            otel.add(delta, labels)
        self._last_values[key] = value


_WARM_REQUESTS_PROM = Counter(
    "cache_warmer_requests_total",
    "Warm requests by final outcome",
    ["site", "outcome"],
)

_WARM_LATENCY_PROM = Histogram(
    "cache_warmer_request_latency_seconds",
    "Wall-clock latency of a warm request, retries included",
    ["site"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

_WARM_RETRIES_PROM = Counter(
    "cache_warmer_retries_total",
    "Warm request attempts retried after a transient failure",
    ["site"],
)

_PURGE_REQUESTS_PROM = Counter(
    "cache_warmer_purges_total",
    "Edge cache purge calls by result",
    ["site", "result"],
)

_LOG_FLUSHES_PROM = Counter(
    "cache_warmer_log_flushes_total",
    "Run log uploads by result",
    ["result"],
)

_SITE_URLS_PROM = Gauge(
    "cache_warmer_site_urls",
    "URLs discovered for a site in the last run",
    ["site"],
)

_OTLP_EXPORT_ERRORS_PROM = Counter(
    "cache_warmer_otlp_export_errors_total",
    "Total OTLP export configuration errors",
    ["protocol"],
)

_OTLP_EXPORT_STATUS_PROM = Gauge(
    "cache_warmer_otlp_exporter_enabled",
    "OTLP exporter enabled status (1=enabled, 0=disabled)",
    ["protocol"],
)

WARM_REQUESTS = MetricBridge(
    _WARM_REQUESTS_PROM,
    otel_name="cache_warmer_requests_total",
    otel_description="Warm requests by final outcome",
    otel_kind="counter",
)

WARM_LATENCY = MetricBridge(
    _WARM_LATENCY_PROM,
    otel_name="cache_warmer_request_latency_seconds",
    otel_description="Wall-clock latency of a warm request, retries included",
    otel_kind="histogram",
)

WARM_RETRIES = MetricBridge(
    _WARM_RETRIES_PROM,
    otel_name="cache_warmer_retries_total",
    otel_description="Warm request attempts retried after a transient failure",
    otel_kind="counter",
)

PURGE_REQUESTS = MetricBridge(
    _PURGE_REQUESTS_PROM,
    otel_name="cache_warmer_purges_total",
    otel_description="Edge cache purge calls by result",
    otel_kind="counter",
)

LOG_FLUSHES = MetricBridge(
    _LOG_FLUSHES_PROM,
    otel_name="cache_warmer_log_flushes_total",
    otel_description="Run log uploads by result",
    otel_kind="counter",
)

SITE_URLS = MetricBridge(
    _SITE_URLS_PROM,
    otel_name="cache_warmer_site_urls",
    otel_description="URLs discovered for a site in the last run",
    otel_kind="gauge",
)

OTLP_EXPORT_ERRORS = MetricBridge(
    _OTLP_EXPORT_ERRORS_PROM,
    otel_name="cache_warmer_otlp_export_errors_total",
    otel_description="Total OTLP export configuration errors",
    otel_kind="counter",
)

OTLP_EXPORT_STATUS = MetricBridge(
    _OTLP_EXPORT_STATUS_PROM,
    otel_name="cache_warmer_otlp_exporter_enabled",
    otel_description="OTLP exporter enabled status (1=enabled, 0=disabled)",
    otel_kind="gauge",
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def write_metrics_textfile(path: str) -> None:
    """Write the registry in node-exporter textfile format (atomic rename)."""
    write_to_textfile(path, REGISTRY)
