"""Search golden signals.

Each signal is declared once and recorded twice: into the Prometheus registry
served on ``/metrics`` and into a lazily created OpenTelemetry instrument.
"""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any, Literal

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


MetricKind = Literal["counter", "histogram"]

_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "product-locator",
    resource_attributes: dict[str, str] | None = None,
) -> MeterProvider:
    """Install the OpenTelemetry meter provider; later calls return the first one."""
    if isinstance(_meter_holder["provider"], MeterProvider):
        return _meter_holder["provider"]

    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = MeterProvider(resource=resource)
    otel_metrics.set_meter_provider(provider)
    _meter_holder.update(provider=provider, meter=provider.get_meter(__name__))
    return provider


class _LabelledSample:
    __slots__ = ("_bridge", "_labels")

    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.record(self._labels, amount)

    def observe(self, value: float) -> None:
        self._bridge.record(self._labels, value)


class MetricBridge:
    """A Prometheus metric paired with its OpenTelemetry counterpart."""

    def __init__(
        self,
        kind: MetricKind,
        name: str,
        description: str,
        labelnames: Sequence[str] = (),
        *,
        buckets: Sequence[float] | None = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.description = description
        if kind == "counter":
            self._prom: Counter | Histogram = Counter(name, description, labelnames)
        elif kind == "histogram":
            extra = {"buckets": buckets} if buckets else {}
            self._prom = Histogram(name, description, labelnames, **extra)
        else:
            raise ValueError(f"Unknown metric kind: {kind}")
        self._otel: Any = None

    def labels(self, **labels: str) -> _LabelledSample:
        return _LabelledSample(self, labels)

    def record(self, labels: dict[str, str], value: float) -> None:
        target = self._prom.labels(**labels) if labels else self._prom
        if self.kind == "counter":
            target.inc(value)
            self._instrument().add(value, labels)
        else:
            target.observe(value)
            self._instrument().record(value, labels)

    def _instrument(self) -> Any:
        if self._otel is None:
            if _meter_holder["meter"] is None:
                init_metrics()
            meter = _meter_holder["meter"]
            create = meter.create_counter if self.kind == "counter" else meter.create_histogram
            self._otel = create(self.name, description=self.description)
        return self._otel


SEARCH_REQUESTS = MetricBridge(
    "counter",
    "search_requests_total",
    "Product search and browse requests by outcome",
    ["operation", "status"],
)
SEARCH_LATENCY = MetricBridge(
    "histogram",
    "search_latency_seconds",
    "Time spent serving a search or browse request",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)
SEARCH_CANDIDATES = MetricBridge(
    "histogram",
    "search_candidates_scored",
    "Products admitted by the recall filter and scored",
    buckets=(0, 1, 5, 10, 25, 50, 100, 250, 1000, 5000),
)
SEARCH_RESULTS = MetricBridge(
    "histogram",
    "search_results_returned",
    "Hits returned after ranking and the result cap",
    buckets=(0, 1, 5, 10, 20, 30, 40, 50),
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Iterator[None]:
    """Observe the block's wall time into ``histogram``, also when it raises."""
    started = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - started)


def get_metrics() -> bytes:
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
