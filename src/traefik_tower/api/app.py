"""FastAPI application for the forward-auth service.

Routes:
- ``/`` - forward-auth verification, called by Traefik for every request
- ``/health`` - health check
- ``/metrics`` - Prometheus metrics
- ``/200``, ``/404`` - debug routes, only when DEBUG is enabled
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from traefik_tower import __version__
from traefik_tower.api.middleware import RequestLoggingMiddleware
from traefik_tower.api.router import debug_router, router
from traefik_tower.auth.strategies import build_strategy, create_cognito_client
from traefik_tower.client import HTTPClient, create_http_client
from traefik_tower.config import AuthType, Settings, get_settings
from traefik_tower.telemetry import (
    Tracing,
    create_tracer_provider,
    create_tracing,
    shutdown_tracer_provider,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the resources the app created itself on shutdown."""
    logger.info("Forward-auth ready (auth_type=%s)", app.state.settings.auth_type.value)

    yield

    for http_client in app.state.owned_http_clients:
        try:
            await http_client.aclose()
        except Exception as e:
            logger.error("Failed to close HTTP client: %s", e)

    shutdown_tracer_provider(app.state.owned_tracer_provider)


def create_app(
    settings: Settings | None = None,
    *,
    tracing: Tracing | None = None,
    http_client: HTTPClient | None = None,
    cognito_client: Any | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The verification strategy is selected here, once, from
    ``settings.auth_type``. Collaborators that are not passed in are
    created from settings and closed when the app shuts down.

    Raises:
        ValueError: A backend URL the selected strategy needs is invalid.
    """
    settings = settings or get_settings()

    owned_tracer_provider = None
    if tracing is None:
        owned_tracer_provider = create_tracer_provider(settings)
        tracing = create_tracing(owned_tracer_provider, settings)

    owned_http_clients: list[HTTPClient] = []
    if settings.auth_type is AuthType.COGNITO_AWS:
        if cognito_client is None:
            cognito_client = create_cognito_client(settings)
    elif http_client is None:
        http_client = create_http_client(settings)
        owned_http_clients.append(http_client)

    strategy = build_strategy(settings, http_client=http_client, cognito_client=cognito_client)

    app = FastAPI(
        title="traefik-tower",
        description="Forward-auth adapter for Traefik",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tracing = tracing
    app.state.strategy = strategy
    app.state.owned_http_clients = owned_http_clients
    app.state.owned_tracer_provider = owned_tracer_provider

    app.include_router(router)
    if settings.debug:
        app.include_router(debug_router)

    app.add_middleware(RequestLoggingMiddleware)

    return app
