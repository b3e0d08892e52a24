"""Observability module for structured logging, metrics and tracing."""

from cache_warmer.observability.context import bind_log_context, get_log_context, log_context
from cache_warmer.observability.logging import JsonFormatter, PlainFormatter, configure_logging
from cache_warmer.observability.metrics import (
    LOG_FLUSHES,
    PURGE_REQUESTS,
    SITE_URLS,
    WARM_LATENCY,
    WARM_REQUESTS,
    WARM_RETRIES,
    configure_metrics_exporter,
    get_metrics,
    init_metrics,
    shutdown_metrics,
    write_metrics_textfile,
)
from cache_warmer.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    shutdown_tracing,
)


__all__ = [
    "LOG_FLUSHES",
    "PURGE_REQUESTS",
    "SITE_URLS",
    "WARM_LATENCY",
    "WARM_REQUESTS",
    "WARM_RETRIES",
    "JsonFormatter",
    "PlainFormatter",
    "bind_log_context",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_log_context",
    "get_metrics",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "log_context",
    "shutdown_metrics",
    "shutdown_tracing",
    "write_metrics_textfile",
]
