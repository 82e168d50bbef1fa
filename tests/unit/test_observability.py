"""Unit tests for logging, request context, metrics and tracing helpers."""

import logging
import sys

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import orjson
from prometheus_client import REGISTRY
import pytest
from starlette.testclient import TestClient

from product_locator.observability import tracing
from product_locator.observability.context import (
    bind_span,
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
    MetricBridge,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from product_locator.observability.tracing import TraceContextMiddleware, create_span
from product_locator.service_layer.search_service import ProductSearchService


@pytest.fixture(autouse=True)
def reset_request_context():
    token = request_context.set(None)
    yield
    request_context.reset(token)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("product_locator.search_service", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestRequestContext:
    def test_created_lazily_outside_a_request(self):
        ctx = current_context()

        assert len(ctx.trace_id) == 32
        assert len(ctx.span_id) == 16
        assert ctx.chain_id is None
        assert current_context() is ctx

    def test_start_request_adopts_inbound_trace_id(self):
        ctx = start_request("a" * 32)

        assert current_context().trace_id == "a" * 32
        assert current_context() is ctx

    def test_start_request_replaces_previous_tenant(self):
        start_request()
        bind_tenant(7, 1)

        start_request()

        assert current_context().chain_id is None

    def test_bind_span_keeps_trace_id(self):
        start_request("t" * 32)

        bind_span("s" * 16)

        assert current_context().trace_id == "t" * 32
        assert current_context().span_id == "s" * 16

    def test_log_fields_include_tenant_once_bound(self):
        start_request("t" * 32)
        bind_tenant(7, 3)

        fields = current_context().log_fields()

        assert fields["tenant"] == "7"
        assert fields["store_id"] == 3
        assert fields["trace_id"] == "t" * 32


@pytest.mark.unit
class TestJsonFormatter:
    def test_emits_trace_and_tenant_fields(self):
        start_request("c" * 32)
        bind_tenant(3)

        entry = orjson.loads(JsonFormatter().format(_record("Search completed")))

        assert entry["message"] == "Search completed"
        assert entry["level"] == "INFO"
        assert entry["trace_id"] == "c" * 32
        assert entry["tenant"] == "3"
        assert "store_id" not in entry
        assert entry["component"] == "search_service"

    def test_extra_fields_redacted(self):
        entry = orjson.loads(JsonFormatter().format(_record(store_id=4, api_key="sk-secret")))

        assert entry["store_id"] == 4
        assert entry["api_key"] == "[REDACTED]"

    def test_unencodable_extras_fall_back(self):
        entry = orjson.loads(JsonFormatter().format(_record(categories={"Produce", "Dairy"})))

        assert entry["categories"] == ["Dairy", "Produce"]

    def test_long_messages_truncated(self):
        entry = orjson.loads(JsonFormatter().format(_record("x" * 5000)))

        assert len(entry["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("product_locator", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = orjson.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in entry["exception"]


@pytest.mark.unit
class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler_installed(self):
        configure_logging(level="debug", json_output=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_plain_text_and_overrides(self):
        configure_logging(level="info", json_output=False, logger_levels={"product_locator.adapters": "error"})

        assert not isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("product_locator.adapters").level == logging.ERROR


@pytest.mark.unit
class TestMetrics:
    def test_labelled_counter_increments(self):
        labels = {"operation": "search", "status": "unit-test"}
        before = REGISTRY.get_sample_value("search_requests_total", labels) or 0.0

        SEARCH_REQUESTS.labels(**labels).inc()

        assert REGISTRY.get_sample_value("search_requests_total", labels) == before + 1

    def test_unlabelled_histogram_observes(self):
        before = REGISTRY.get_sample_value("search_candidates_scored_count") or 0.0

        SEARCH_CANDIDATES.labels().observe(12)

        assert REGISTRY.get_sample_value("search_candidates_scored_count") == before + 1

    def test_track_latency_records_on_error(self):
        labels = {"operation": "unit-test"}
        before = REGISTRY.get_sample_value("search_latency_seconds_count", labels) or 0.0

        with pytest.raises(RuntimeError), track_latency(SEARCH_LATENCY, **labels):
            raise RuntimeError("boom")

        assert REGISTRY.get_sample_value("search_latency_seconds_count", labels) == before + 1

    def test_exposition(self):
        assert b"search_results_returned" in get_metrics()
        assert get_metrics_content_type().startswith("text/plain")

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="gauge"):
            MetricBridge("gauge", "unit_test_gauge", "never registered")


@pytest.mark.unit
class TestCreateSpan:
    def test_sets_attributes_and_yields_span(self):
        with create_span("unit", attributes={"search.store_id": 1}) as span:
            assert span is not None

    def test_exceptions_propagate(self):
        with pytest.raises(KeyError), create_span("failing"):
            raise KeyError("missing")


@pytest.fixture
def span_exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setitem(tracing._tracer_holder, "tracer", provider.get_tracer("tests"))
    return exporter


@pytest.mark.unit
class TestSpanRecording:
    def test_attributes_recorded(self, span_exporter):
        with create_span("catalog.list_products", attributes={"catalog.chain_id": 2}):
            pass

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "catalog.list_products"
        assert span.attributes["catalog.chain_id"] == 2

    def test_error_status_on_exception(self, span_exporter):
        with pytest.raises(ValueError), create_span("failing"):
            raise ValueError("bad")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code is StatusCode.ERROR
        assert span.events[0].name == "exception"

    @pytest.mark.asyncio
    async def test_search_emits_pipeline_spans(self, span_exporter, fake_repository):
        await ProductSearchService(fake_repository).search("apple", 1)

        names = {span.name for span in span_exporter.get_finished_spans()}
        assert {"product_search", "catalog.list_products", "catalog.get_inventory"} <= names


@pytest.mark.unit
class TestTraceContextMiddleware:
    @staticmethod
    async def _echo_context(scope, receive, send):
        body = orjson.dumps(current_context().log_fields())
        await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"application/json")]})
        await send({"type": "http.response.body", "body": body})

    def test_inbound_trace_id_honoured_and_echoed(self):
        client = TestClient(TraceContextMiddleware(self._echo_context))

        response = client.get("/", headers={"x-trace-id": "f" * 32})

        assert response.json()["trace_id"] == "f" * 32
        assert response.headers["x-trace-id"] == "f" * 32

    def test_trace_id_generated_when_absent(self):
        client = TestClient(TraceContextMiddleware(self._echo_context))

        first = client.get("/")
        second = client.get("/")

        assert len(first.json()["trace_id"]) == 32
        assert first.json()["trace_id"] != second.json()["trace_id"]
        assert first.headers["x-trace-id"] == first.json()["trace_id"]
