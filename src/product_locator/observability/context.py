"""Correlation identifiers for the request currently being served.

A kiosk request carries one :class:`RequestContext`. The trace ids are assigned
when the request arrives; the chain and store are filled in once the store has
been resolved, so every log line after that point names the tenant it served.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
import secrets


@dataclass(frozen=True, slots=True)
class RequestContext:
    trace_id: str
    span_id: str
    chain_id: int | None = None
    store_id: int | None = None

    def log_fields(self) -> dict[str, object]:
        """Fields merged into every structured log entry."""
        fields: dict[str, object] = {"trace_id": self.trace_id, "span_id": self.span_id}
        if self.chain_id is not None:
            fields["tenant"] = str(self.chain_id)
        if self.store_id is not None:
            fields["store_id"] = self.store_id
        return fields


request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def new_trace_id() -> str:
    return secrets.token_hex(16)


def new_span_id() -> str:
    return secrets.token_hex(8)


def start_request(trace_id: str | None = None) -> RequestContext:
    """Open a fresh context, adopting ``trace_id`` when a caller propagated one."""
    ctx = RequestContext(trace_id=trace_id or new_trace_id(), span_id=new_span_id())
    request_context.set(ctx)
    return ctx


def current_context() -> RequestContext:
    """Context of the running request; code outside a request gets one lazily."""
    ctx = request_context.get()
    if ctx is None:
        ctx = start_request()
    return ctx


def bind_span(span_id: str) -> None:
    request_context.set(replace(current_context(), span_id=span_id))


def bind_tenant(chain_id: int, store_id: int | None = None) -> None:
    """Record the chain (and store) the request was scoped to."""
    request_context.set(replace(current_context(), chain_id=chain_id, store_id=store_id))
