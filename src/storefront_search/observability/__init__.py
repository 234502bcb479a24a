"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from storefront_search.observability.context import get_trace_context, set_trace_context, trace_context
from storefront_search.observability.logging import (
    JsonFormatter,
    configure_log_exporter,
    configure_logging,
    init_log_exporter,
)
from storefront_search.observability.metrics import (
    QUERY_ERRORS,
    QUERY_LATENCY,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SUGGESTION_OUTCOMES,
    configure_metrics_exporter,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from storefront_search.observability.tracing import (
    TraceContextMiddleware,
    build_trace_resource_attributes,
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    trace_request,
)


__all__ = [
    "QUERY_ERRORS",
    "QUERY_LATENCY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SUGGESTION_OUTCOMES",
    "JsonFormatter",
    "TraceContextMiddleware",
    "build_trace_resource_attributes",
    "configure_log_exporter",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_log_exporter",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "trace_request",
    "track_latency",
]
