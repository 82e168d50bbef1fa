"""Request context, structured logging, metrics and tracing."""

from product_locator.observability.context import (
    RequestContext,
    bind_tenant,
    current_context,
    request_context,
    start_request,
)
from product_locator.observability.logging import JsonFormatter, configure_logging
from product_locator.observability.metrics import (
    SEARCH_CANDIDATES,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    SEARCH_RESULTS,
    MetricBridge,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from product_locator.observability.tracing import (
    TraceContextMiddleware,
    create_span,
    get_tracer,
    init_tracing,
    trace_request,
)


__all__ = [
    "SEARCH_CANDIDATES",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "SEARCH_RESULTS",
    "JsonFormatter",
    "MetricBridge",
    "RequestContext",
    "TraceContextMiddleware",
    "bind_tenant",
    "configure_logging",
    "create_span",
    "current_context",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "request_context",
    "start_request",
    "trace_request",
    "track_latency",
]
