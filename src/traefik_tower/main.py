"""Main entry point for Traefik Tower."""

import logging
import sys

import uvicorn
from dotenv import load_dotenv

from traefik_tower.config import get_settings


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()

    log_format = (
        '{"time": "%(asctime)s", "level": "%(levelname)s", '
        '"logger": "%(name)s", "message": "%(message)s"}'
        if settings.log_format == "json"
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # DEBUG turns on the per-call request/response dumps.
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper())

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main() -> None:
    """Run the forward-auth server."""
    # Load environment variables from .env file
    load_dotenv()

    # Set up logging
    setup_logging()

    settings = get_settings()
    logger = logging.getLogger(__name__)

    from traefik_tower.telemetry import (
        create_tracer_provider,
        create_tracing,
        shutdown_tracer_provider,
    )

    tracer_provider = create_tracer_provider(settings)

    logger.info(
        "Starting Traefik Tower",
        extra={
            "auth_type": settings.auth_type.value,
            "host": settings.host,
            "port": settings.port,
            "otel_enabled": settings.otel_enabled,
        },
    )

    try:
        # Import app here to ensure environment is configured
        from traefik_tower.api.app import create_app

        app = create_app(settings, tracing=create_tracing(tracer_provider, settings))

        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    finally:
        # Ensure telemetry is properly shut down
        shutdown_tracer_provider(tracer_provider)


if __name__ == "__main__":
    main()
