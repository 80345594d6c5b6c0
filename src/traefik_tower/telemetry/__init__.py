"""OpenTelemetry integration for distributed tracing."""

from traefik_tower.telemetry.context import (
    SpanState,
    TraceContext,
    Tracing,
    TracingError,
)
from traefik_tower.telemetry.metrics import record_verification, render_metrics
from traefik_tower.telemetry.setup import (
    create_tracer_provider,
    create_tracing,
    shutdown_tracer_provider,
)

__all__ = [
    "SpanState",
    "TraceContext",
    "Tracing",
    "TracingError",
    "create_tracer_provider",
    "create_tracing",
    "record_verification",
    "render_metrics",
    "shutdown_tracer_provider",
]
