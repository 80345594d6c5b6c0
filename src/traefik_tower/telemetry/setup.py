"""OpenTelemetry setup and configuration."""

import logging
from typing import TYPE_CHECKING

from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    TraceIdRatioBased,
)
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from traefik_tower import __version__
from traefik_tower.config import Settings
from traefik_tower.telemetry.context import Tracing

if TYPE_CHECKING:
    from opentelemetry.sdk.trace.sampling import Sampler

logger = logging.getLogger(__name__)


# OTEL_TRACES_SAMPLER values; the ratio samplers take OTEL_TRACES_SAMPLER_ARG.
_SAMPLERS = {
    "always_on": lambda ratio: ALWAYS_ON,
    "always_off": lambda ratio: ALWAYS_OFF,
    "traceidratio": TraceIdRatioBased,
    "parentbased_always_on": lambda ratio: ParentBased(ALWAYS_ON),
    "parentbased_always_off": lambda ratio: ParentBased(ALWAYS_OFF),
    "parentbased_traceidratio": lambda ratio: ParentBased(TraceIdRatioBased(ratio)),
}


def _get_sampler(sampler_type: str, sampler_arg: float) -> "Sampler":
    """Get the sampler named by ``OTEL_TRACES_SAMPLER``."""
    factory = _SAMPLERS.get(sampler_type)
    if factory is None:
        logger.warning("Unknown sampler type '%s', using parentbased_always_on", sampler_type)
        factory = _SAMPLERS["parentbased_always_on"]
    return factory(sampler_arg)


def _create_exporter(exporter_type: str, otlp_endpoint: str, otlp_http_endpoint: str):
    """Create the appropriate span exporter based on configuration."""
    if exporter_type == "console":
        return ConsoleSpanExporter()

    elif exporter_type == "otlp":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        return OTLPSpanExporter(endpoint=otlp_endpoint)

    elif exporter_type == "otlp-http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )

        return OTLPSpanExporter(endpoint=f"{otlp_http_endpoint}/v1/traces")

    elif exporter_type == "zipkin":
        try:
            from opentelemetry.exporter.zipkin.json import ZipkinExporter

            return ZipkinExporter()
        except ImportError:
            logger.error(
                "Zipkin exporter not installed. Install with: pip install traefik-tower[zipkin]"
            )
            raise

    else:
        logger.warning("Unknown exporter type '%s', using console", exporter_type)
        return ConsoleSpanExporter()


def _create_propagator(propagator_type: str) -> TextMapPropagator:
    """Create the propagator for the trace header format in use."""
    if propagator_type == "jaeger":
        # Traefik's Jaeger tracing sends uber-trace-id headers.
        from opentelemetry.propagators.jaeger import JaegerPropagator

        return JaegerPropagator()
    return TraceContextTextMapPropagator()


def create_tracer_provider(settings: Settings) -> TracerProvider:
    """Build the tracer provider.

    The provider is not installed as the global OpenTelemetry provider;
    hand it to ``create_tracing``. With tracing disabled the provider
    samples nothing, so spans are still created but never recorded or
    exported.
    """
    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": "development" if settings.debug else "production",
        }
    )

    if not settings.otel_enabled:
        logger.debug("OpenTelemetry tracing is disabled")
        return TracerProvider(resource=resource, sampler=ALWAYS_OFF)

    logger.info(
        "Initializing OpenTelemetry tracing (service=%s, exporter=%s, sampler=%s, propagator=%s)",
        settings.otel_service_name,
        settings.otel_exporter_type,
        settings.otel_traces_sampler,
        settings.otel_propagator,
    )

    sampler = _get_sampler(settings.otel_traces_sampler, settings.otel_traces_sampler_arg)
    provider = TracerProvider(resource=resource, sampler=sampler)

    exporter = _create_exporter(
        settings.otel_exporter_type,
        settings.otel_exporter_otlp_endpoint,
        settings.otel_exporter_otlp_http_endpoint,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))

    if settings.tracing_debug and settings.otel_exporter_type != "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    logger.info("OpenTelemetry tracing initialized successfully")
    return provider


def create_tracing(provider: TracerProvider, settings: Settings) -> Tracing:
    """Wrap a provider's tracer and the configured propagator."""
    return Tracing(
        provider.get_tracer("traefik_tower", __version__),
        _create_propagator(settings.otel_propagator),
    )


def shutdown_tracer_provider(provider: TracerProvider | None) -> None:
    """Shutdown the provider and flush any pending spans.

    Call this function during application shutdown to ensure all
    spans are exported before the process exits.
    """
    if provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        provider.shutdown()
