"""Per-request tracing context.

A request is traced as one SERVER span for the proxied request (the
parent) and one CLIENT span per call to an auth backend (the child).
``TraceContext`` keeps that pair as a small state machine:

    IDLE --parent()--> PARENTED --child()--> CHILD_ACTIVE
    CHILD_ACTIVE --end_child()--> PARENTED
    CHILD_ACTIVE --child()--> CHILD_ACTIVE   (previous child ended first)
    any --finish()--> IDLE

Each request gets its own context from ``Tracing.context()``; the context
is never shared between requests.
"""

import logging
from collections.abc import MutableMapping
from enum import Enum
from types import TracebackType

from opentelemetry import trace
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, format_trace_id

from traefik_tower.auth.models import InboundRequest

logger = logging.getLogger(__name__)

UNDEFINED_TRACE_ID = "undefined"


class TracingError(Exception):
    """Raised on a transition the span state machine does not allow."""


class SpanState(str, Enum):
    """Tracing context states."""

    IDLE = "idle"
    PARENTED = "parented"
    CHILD_ACTIVE = "child-active"


class TraceContext:
    """Parent/child span pair for one inbound request."""

    _ALLOWED = {
        "parent": {SpanState.IDLE},
        "child": {SpanState.PARENTED, SpanState.CHILD_ACTIVE},
        "end_child": {SpanState.CHILD_ACTIVE},
    }

    def __init__(self, tracer: trace.Tracer, propagator: TextMapPropagator) -> None:
        self._tracer = tracer
        self._propagator = propagator
        self._parent_span: Span | None = None
        self._child_span: Span | None = None
        self._trace_id = UNDEFINED_TRACE_ID

    def __enter__(self) -> "TraceContext":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.finish()

    @property
    def state(self) -> SpanState:
        if self._parent_span is None:
            return SpanState.IDLE
        if self._child_span is None:
            return SpanState.PARENTED
        return SpanState.CHILD_ACTIVE

    @property
    def parent_span(self) -> Span | None:
        return self._parent_span

    @property
    def child_span(self) -> Span | None:
        return self._child_span

    @property
    def trace_id(self) -> str:
        """Hex trace id of the last parent span, kept after ``finish()``."""
        return self._trace_id

    def parent(self, request: InboundRequest) -> Span:
        """Start the span of the inbound request.

        Continues the proxy's trace when its headers carry one.
        """
        self._guard("parent")
        upstream = self._propagator.extract(carrier=request.headers)
        span = self._tracer.start_span(request.path, context=upstream, kind=SpanKind.SERVER)
        self._parent_span = span

        span_context = span.get_span_context()
        if span_context.is_valid:
            self._trace_id = format_trace_id(span_context.trace_id)
        return span

    def child(self, name: str) -> Span:
        """Start the span of an outbound call under the parent span."""
        if self._parent_span is None:
            raise TracingError("no parent span to attach the outbound call to")
        self._guard("child")
        if self._child_span is not None:
            logger.debug("Ending unfinished child span before starting %s", name)
            self._child_span.end()
            self._child_span = None

        self._child_span = self._tracer.start_span(
            name,
            context=trace.set_span_in_context(self._parent_span),
            kind=SpanKind.CLIENT,
        )
        return self._child_span

    def end_child(self) -> None:
        self._guard("end_child")
        self._child_span.end()
        self._child_span = None

    def inject(self, headers: MutableMapping[str, str]) -> None:
        """Write the active child span's context into outbound headers."""
        if self._child_span is None:
            raise TracingError("no child span to propagate")
        self._propagator.inject(headers, context=trace.set_span_in_context(self._child_span))

    @staticmethod
    def ext_url(span: Span | None, method: str, url: str) -> None:
        if span is None:
            return
        span.set_attribute("http.method", method)
        span.set_attribute("http.url", url)

    @staticmethod
    def ext_status(span: Span | None, status_code: int) -> None:
        if span is None:
            return
        span.set_attribute("http.status_code", status_code)
        if status_code >= 500:
            span.set_status(Status(StatusCode.ERROR))

    def finish(self) -> None:
        """End every open span. Safe to call in any state."""
        if self._child_span is not None:
            self._child_span.end()
            self._child_span = None
        if self._parent_span is not None:
            self._parent_span.end()
            self._parent_span = None

    def _guard(self, transition: str) -> None:
        state = self.state
        if state not in self._ALLOWED[transition]:
            raise TracingError(f"cannot {transition} in state {state.value}")


class Tracing:
    """Tracer handle injected into the forward-auth boundary."""

    def __init__(self, tracer: trace.Tracer, propagator: TextMapPropagator) -> None:
        self._tracer = tracer
        self._propagator = propagator

    @property
    def tracer(self) -> trace.Tracer:
        return self._tracer

    def context(self) -> TraceContext:
        """Fresh tracing context for one inbound request."""
        return TraceContext(self._tracer, self._propagator)
