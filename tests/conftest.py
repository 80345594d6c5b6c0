"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import Callable

import httpx
import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

# Set test environment variables before importing application modules
os.environ["AUTH_TYPE"] = "hydra"
os.environ["AUTH_SERVER_URL"] = "https://hydra.test"
os.environ["KETO_URL"] = ""
os.environ["OTEL_ENABLED"] = "false"
os.environ["DEBUG"] = "true"

AUTH_SERVER_URL = "https://hydra.test"
KETO_URL = "https://keto.test"


class RecordingBackend:
    """Routes outbound calls to canned JSON responses and records them."""

    def __init__(self, routes: dict[tuple[str, str], tuple[int, object]] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not_found"})
        status_code, payload = self.routes[key]
        if isinstance(payload, (bytes, str)):
            return httpx.Response(status_code, content=payload)
        return httpx.Response(status_code, content=json.dumps(payload).encode())

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def test_settings():
    """Provide test settings."""
    from traefik_tower.config import Settings

    return Settings(
        auth_type="hydra",
        auth_server_url=AUTH_SERVER_URL,
        keto_url=KETO_URL,
        debug=True,
        otel_enabled=False,
    )


@pytest.fixture
def span_exporter():
    """Collect finished spans in memory."""
    return InMemorySpanExporter()


@pytest.fixture
def tracing(span_exporter):
    """Tracing handle that records every span."""
    from traefik_tower.telemetry import Tracing

    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield Tracing(provider.get_tracer("tests"), TraceContextTextMapPropagator())
    provider.shutdown()


@pytest.fixture
def make_http_client() -> Callable:
    """Build an HTTPClient whose calls are answered by a RecordingBackend."""
    from traefik_tower.client import HTTPClient

    def factory(backend: RecordingBackend):
        return HTTPClient(httpx.AsyncClient(transport=httpx.MockTransport(backend)))

    return factory


@pytest.fixture
def backend() -> RecordingBackend:
    """Fake auth backends; add routes with ``backend.routes[(method, path)] = (status, body)``."""
    return RecordingBackend()


@pytest.fixture
def http_client(make_http_client, backend):
    """HTTPClient wired to the ``backend`` fixture."""
    return make_http_client(backend)
