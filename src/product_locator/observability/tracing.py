"""Span helpers and the HTTP hooks that open a trace per kiosk request."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from product_locator.observability.context import bind_span, start_request


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span, Tracer
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

TRACE_HEADER = b"x-trace-id"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "product-locator",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install a process-wide tracer provider tagged with ``service_name``."""
    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = provider.get_tracer(__name__)
    logger.info("Tracing enabled for %s", service_name)
    return provider


def get_tracer() -> Tracer:
    tracer = _tracer_holder["tracer"]
    if tracer is None:
        tracer = _tracer_holder["tracer"] = trace.get_tracer(__name__)
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Run the block inside a span; failures mark the span as errored and re-raise.

    The span id is copied into the request context so log lines written inside
    the block point at this span.
    """
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            bind_span(trace.format_span_id(span_context.span_id))
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise


class TraceContextMiddleware:
    """Starts a request context and echoes its trace id back in ``x-trace-id``.

    An inbound ``x-trace-id`` header is adopted so a kiosk can correlate its own
    logs with ours.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        inbound = next((value for key, value in scope["headers"] if key == TRACE_HEADER), b"")
        ctx = start_request(inbound.decode("latin-1").strip() or None)
        trace_id = ctx.trace_id.encode("latin-1")

        async def send_with_trace_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [(k, v) for k, v in message.get("headers", []) if k != TRACE_HEADER]
                message = {**message, "headers": [*headers, (TRACE_HEADER, trace_id)]}
            await send(message)

        await self.app(scope, receive, send_with_trace_id)


async def trace_request(request: Request, call_next: Any) -> Response:
    """Server span around one HTTP request, named after the matched route."""
    attributes: dict[str, Any] = {"http.method": request.method, "http.target": request.url.path}
    if store_id := request.query_params.get("storeId"):
        attributes["kiosk.store_id"] = store_id

    with create_span(f"{request.method} {request.url.path}", kind=SpanKind.SERVER, attributes=attributes) as span:
        response: Response = await call_next(request)
        route = request.scope.get("route")
        if route is not None and hasattr(route, "path"):
            span.set_attribute("http.route", route.path)
            span.update_name(f"{request.method} {route.path}")
        span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
        return response
